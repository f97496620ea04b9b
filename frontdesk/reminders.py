"""
Reminder scheduling.

Works out which reminders an appointment gets, when each fires and which
channel it goes out on. Delivery itself belongs to the senders; this module
only produces pending ReminderEvent records.
"""

import logging
import uuid
from datetime import timedelta
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from frontdesk.clock import Clock, SystemClock
from frontdesk.config import (
    CLINIC_NAME,
    REMINDER_ONE_DAY,
    REMINDER_SEVEN_DAYS,
    REMINDER_THREE_DAYS,
)
from frontdesk.patients import PatientDirectory
from frontdesk.schemas import (
    Appointment,
    DeliveryChannel,
    Patient,
    ReminderEvent,
    ReminderKind,
    ReminderWindow,
)

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates" / "reminders"

LEAD_PHRASES = {
    ReminderKind.SEVEN_DAYS: "in one week",
    ReminderKind.THREE_DAYS: "in three days",
    ReminderKind.ONE_DAY: "tomorrow",
}


def default_windows(
    seven_days: bool = REMINDER_SEVEN_DAYS,
    three_days: bool = REMINDER_THREE_DAYS,
    one_day: bool = REMINDER_ONE_DAY,
) -> tuple[ReminderWindow, ...]:
    return (
        ReminderWindow(
            kind=ReminderKind.SEVEN_DAYS, offset=timedelta(days=7), enabled=seven_days
        ),
        ReminderWindow(
            kind=ReminderKind.THREE_DAYS, offset=timedelta(days=3), enabled=three_days
        ),
        ReminderWindow(
            kind=ReminderKind.ONE_DAY, offset=timedelta(days=1), enabled=one_day
        ),
    )


def select_channel(patient: Patient) -> DeliveryChannel:
    """
    Fixed priority: chat, then email, then SMS (with consent), then phone.

    ``patient.preferred_contact`` is display-only and does not take part.
    Phone always qualifies; it means the front desk calls the patient.
    """
    if patient.chat_id:
        return DeliveryChannel.CHAT
    if patient.email:
        return DeliveryChannel.EMAIL
    if patient.sms_consent:
        return DeliveryChannel.SMS
    return DeliveryChannel.PHONE


class ReminderScheduler:
    def __init__(
        self,
        directory: PatientDirectory,
        clock: Optional[Clock] = None,
        windows: Optional[Sequence[ReminderWindow]] = None,
        clinic_name: str = CLINIC_NAME,
    ):
        self.directory = directory
        self.clock = clock or SystemClock()
        self.windows = tuple(default_windows() if windows is None else windows)
        self.clinic_name = clinic_name
        self._templates = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            undefined=StrictUndefined,
            trim_blocks=True,
        )

    def schedule(
        self, appointment: Appointment, existing: Iterable[ReminderEvent] = ()
    ) -> List[ReminderEvent]:
        """
        Pending reminder events for ``appointment``.

        A window is used when it is enabled, not already covered by an event
        in ``existing`` and its fire time is strictly after now. Windows that
        have already passed are dropped, never sent late.
        """
        patient = self.directory.get(appointment.patient_id)
        now = self.clock.now()
        covered = {e.kind for e in existing if e.appointment_id == appointment.id}
        channel = select_channel(patient)

        events = []
        for window in self.windows:
            if not window.enabled or window.kind in covered:
                continue
            fire_at = appointment.start - window.offset
            if fire_at <= now:
                logger.debug(
                    "Skipping %s reminder for appointment %s: %s already passed",
                    window.kind.value, appointment.id, fire_at,
                )
                continue
            events.append(
                ReminderEvent(
                    id=uuid.uuid4().hex,
                    appointment_id=appointment.id,
                    patient_id=patient.id,
                    kind=window.kind,
                    fire_at=fire_at,
                    channel=channel,
                    message=self.render(window.kind, appointment, patient, channel),
                )
            )

        events.sort(key=lambda e: e.fire_at)
        return events

    def render(
        self,
        kind: ReminderKind,
        appointment: Appointment,
        patient: Patient,
        channel: DeliveryChannel,
    ) -> str:
        name = "sms.txt" if channel == DeliveryChannel.SMS else f"{kind.value}.txt"
        template = self._templates.get_template(name)
        return template.render(
            clinic_name=self.clinic_name,
            patient=patient,
            appointment=appointment,
            lead=LEAD_PHRASES[kind],
            when=appointment.start.strftime("%A %d %B %Y at %H:%M"),
            short_when=appointment.start.strftime("%m/%d %H:%M"),
        ).strip()
