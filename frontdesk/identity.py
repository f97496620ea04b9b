import logging
from typing import Union

from frontdesk.patients import PatientDirectory
from frontdesk.schemas import ContactChannel, Identification, InboundContact

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Matches an inbound contact to an existing patient on the same channel only."""

    def __init__(self, directory: PatientDirectory):
        self.directory = directory

    def identify(
        self, contact_value: str, channel: Union[ContactChannel, str]
    ) -> Identification:
        channel = ContactChannel(channel)
        match = None
        if contact_value:
            # registration order; colliding contact values resolve to the first patient
            for patient in self.directory.all():
                if patient.contact_for(channel) == contact_value:
                    match = patient
                    break

        logger.debug(
            "identify %s via %s -> %s",
            contact_value, channel.value, match.id if match else "new contact",
        )
        return Identification(channel=channel, contact=contact_value, patient=match)

    def identify_contact(self, contact: InboundContact) -> Identification:
        return self.identify(contact.value, contact.channel)
