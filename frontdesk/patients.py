"""
Patient directory.

Owns the patient records and their visit history. Patients are only ever
removed through ``delete``; the front desk goes through
``AppointmentBook.delete_patient``, which refuses while appointments are open.
"""

import logging
import threading
from datetime import date
from typing import Iterable, List, Optional

from pydantic import ValidationError

from frontdesk.clock import Clock, SystemClock
from frontdesk.errors import InvalidRecord, PatientNotFound
from frontdesk.schemas import DeliveryChannel, Patient, VisitRecord

logger = logging.getLogger(__name__)

# fields a front-desk edit is allowed to touch
CONTACT_FIELDS = (
    "name",
    "phone",
    "email",
    "chat_id",
    "social_handle",
    "sms_consent",
    "preferred_contact",
)


class PatientDirectory:
    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._patients: dict[int, Patient] = {}
        self._visits: List[VisitRecord] = []
        self._next_id = 1
        self._numbers_issued: dict[int, int] = {}

    def _next_patient_number(self, year: int) -> str:
        return f"P{year}{self._numbers_issued.get(year, 0) + 1:03d}"

    def register(
        self,
        name: str,
        phone: str,
        email: Optional[str] = None,
        chat_id: Optional[str] = None,
        social_handle: Optional[str] = None,
        sms_consent: bool = False,
        preferred_contact: Iterable[DeliveryChannel] = (),
        registered_on: Optional[date] = None,
    ) -> Patient:
        registered_on = registered_on or self.clock.now().date()
        with self._lock:
            try:
                patient = Patient(
                    id=self._next_id,
                    patient_number=self._next_patient_number(registered_on.year),
                    name=name,
                    phone=phone,
                    email=email,
                    chat_id=chat_id,
                    social_handle=social_handle,
                    sms_consent=sms_consent,
                    preferred_contact=tuple(preferred_contact),
                    registered_on=registered_on,
                )
            except ValidationError as exc:
                raise InvalidRecord.from_validation_error(exc) from None
            self._patients[patient.id] = patient
            self._next_id += 1
            self._numbers_issued[registered_on.year] = int(patient.patient_number[5:])

        logger.info("Registered patient %s (%s)", patient.id, patient.patient_number)
        return patient

    def find(self, patient_id: int) -> Optional[Patient]:
        return self._patients.get(patient_id)

    def get(self, patient_id: int) -> Patient:
        patient = self._patients.get(patient_id)
        if patient is None:
            raise PatientNotFound(patient_id)
        return patient

    def all(self) -> List[Patient]:
        """Patients in registration order."""
        return list(self._patients.values())

    def update_contact(self, patient_id: int, **fields) -> Patient:
        unknown = sorted(set(fields) - set(CONTACT_FIELDS))
        if unknown:
            raise InvalidRecord(unknown[0], fields[unknown[0]], "not editable")
        if fields.get("preferred_contact") is not None:
            fields["preferred_contact"] = tuple(fields["preferred_contact"])

        with self._lock:
            current = self.get(patient_id)
            try:
                updated = Patient.model_validate({**current.model_dump(), **fields})
            except ValidationError as exc:
                raise InvalidRecord.from_validation_error(exc) from None
            self._patients[patient_id] = updated
        return updated

    def record_visit(self, visit: VisitRecord) -> Patient:
        """Append a visit and bump the patient's counters."""
        with self._lock:
            patient = self.get(visit.patient_id)
            last_visit = patient.last_visit
            if last_visit is None or visit.day > last_visit:
                last_visit = visit.day
            updated = patient.model_copy(
                update={
                    "visit_count": patient.visit_count + 1,
                    "last_visit": last_visit,
                }
            )
            self._visits.append(visit)
            self._patients[patient.id] = updated

        logger.info(
            "Visit recorded for patient %s (count=%s)", updated.id, updated.visit_count
        )
        return updated

    def visits(self, patient_id: int) -> List[VisitRecord]:
        """Visit history, newest first."""
        self.get(patient_id)
        history = [v for v in self._visits if v.patient_id == patient_id]
        return sorted(history, key=lambda v: v.day, reverse=True)

    def correct_visit_count(self, patient_id: int, count: int) -> Patient:
        """Explicit correction; the only way a visit count goes down."""
        if not isinstance(count, int) or count < 0:
            raise InvalidRecord("visit_count", count, "must be a non-negative integer")
        with self._lock:
            patient = self.get(patient_id)
            updated = patient.model_copy(update={"visit_count": count})
            self._patients[patient_id] = updated

        logger.warning(
            "Visit count for patient %s corrected: %s -> %s",
            patient_id, patient.visit_count, count,
        )
        return updated

    def delete(self, patient_id: int) -> Patient:
        """Drop the patient and their visit history. Callers check appointments."""
        with self._lock:
            patient = self._patients.pop(patient_id, None)
            if patient is not None:
                self._visits = [v for v in self._visits if v.patient_id != patient_id]
        if patient is None:
            raise PatientNotFound(patient_id)
        logger.warning("Patient %s deleted by admin action", patient_id)
        return patient

    def load(
        self, patients: Iterable[Patient], visits: Iterable[VisitRecord] = ()
    ) -> None:
        """Restore previously persisted records."""
        with self._lock:
            for patient in sorted(patients, key=lambda p: p.id):
                self._patients[patient.id] = patient
                self._next_id = max(self._next_id, patient.id + 1)
                if patient.registered_on is not None:
                    year = patient.registered_on.year
                    number = patient.patient_number
                    if number.startswith(f"P{year}") and number[5:].isdigit():
                        self._numbers_issued[year] = max(
                            self._numbers_issued.get(year, 0), int(number[5:])
                        )
            self._visits.extend(visits)
