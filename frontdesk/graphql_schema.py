from datetime import date, datetime
from typing import Optional

import strawberry
from fastapi import Depends
from sqlalchemy.orm import Session
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from frontdesk import store
from frontdesk.clinic import Clinic
from frontdesk.config import DEFAULT_DURATION_MINUTES
from frontdesk.database import get_db
from frontdesk.deps import get_clinic
from frontdesk.schemas import Appointment


@strawberry.type
class AppointmentType:
    id: int
    patient_id: int
    start: datetime
    duration_minutes: int
    treatment: str
    status: str
    source: str

    @classmethod
    def from_record(cls, appointment: Appointment) -> "AppointmentType":
        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            start=appointment.start,
            duration_minutes=appointment.duration_minutes,
            treatment=appointment.treatment,
            status=appointment.status.value,
            source=appointment.source.value,
        )


@strawberry.type
class PatientType:
    id: int
    patient_number: str
    name: str
    phone: str
    email: Optional[str]
    visit_count: int


@strawberry.type
class IdentifyResult:
    is_existing: bool
    patient: Optional[PatientType]


@strawberry.input
class BookInput:
    patient_id: int
    day: date
    start_time: str
    treatment: str
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    source: str = "web"
    notes: str = ""


async def get_context(
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    return {"clinic": clinic, "db": db}


@strawberry.type
class Query:
    @strawberry.field
    def slots(self, info: Info, day: date, interval: Optional[int] = None) -> list[str]:
        clinic = info.context["clinic"]
        return [
            slot.strftime("%H:%M")
            for slot in clinic.book.available_slots(day, interval)
        ]

    @strawberry.field
    def appointments(self, info: Info, day: date) -> list[AppointmentType]:
        clinic = info.context["clinic"]
        return [AppointmentType.from_record(a) for a in clinic.book.for_date(day)]

    @strawberry.field
    def identify(self, info: Info, contact: str, channel: str) -> IdentifyResult:
        clinic = info.context["clinic"]
        result = clinic.identity.identify(contact, channel)
        patient = None
        if result.patient is not None:
            p = result.patient
            patient = PatientType(
                id=p.id,
                patient_number=p.patient_number,
                name=p.name,
                phone=p.phone,
                email=p.email,
                visit_count=p.visit_count,
            )
        return IdentifyResult(is_existing=result.is_existing, patient=patient)


@strawberry.type
class Mutation:
    @strawberry.mutation
    def book_appointment(self, info: Info, input: BookInput) -> AppointmentType:
        clinic = info.context["clinic"]
        appointment = clinic.book.book(
            patient_id=input.patient_id,
            day=input.day,
            start_time=input.start_time,
            duration_minutes=input.duration_minutes,
            treatment=input.treatment,
            source=input.source,
            notes=input.notes,
        )
        store.save_booking(
            info.context["db"], appointment, clinic.book.reminders_for(appointment.id)
        )
        return AppointmentType.from_record(appointment)

    @strawberry.mutation
    def transition_appointment(
        self, info: Info, appointment_id: int, status: str
    ) -> AppointmentType:
        clinic = info.context["clinic"]
        appointment = clinic.book.transition(appointment_id, status)
        store.save_transition(info.context["db"], clinic, appointment)
        return AppointmentType.from_record(appointment)


schema = strawberry.Schema(query=Query, mutation=Mutation)
graphql_app = GraphQLRouter(schema, context_getter=get_context)
