import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Response
from sqlalchemy.orm import Session

from frontdesk import store
from frontdesk.business_calendar import to_date
from frontdesk.clinic import Clinic, build_clinic
from frontdesk.config import CLINIC_NAME, LOG_LEVEL
from frontdesk.database import SessionLocal, get_db, init_db
from frontdesk.deps import get_clinic
from frontdesk.errors import (
    AppointmentNotFound,
    InvalidDate,
    InvalidRecord,
    InvalidTransition,
    OutsideBusinessHours,
    PatientHasAppointments,
    PatientNotFound,
    ReminderNotFound,
    SchedulingError,
    SlotConflict,
    StartInPast,
)
from frontdesk.graphql_schema import graphql_app
from frontdesk.schemas import (
    Appointment,
    AppointmentUpdate,
    BookRequest,
    BookResponse,
    DeliveryReport,
    HolidayRequest,
    HolidayView,
    IdentifyRequest,
    IdentifyResponse,
    Patient,
    PatientCreate,
    PatientUpdate,
    ReminderEvent,
    SlotsResponse,
    SlotView,
    TransitionRequest,
    VisitCountCorrection,
    VisitRecord,
)

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    InvalidDate: 422,
    InvalidRecord: 422,
    OutsideBusinessHours: 422,
    StartInPast: 422,
    SlotConflict: 409,
    InvalidTransition: 409,
    PatientHasAppointments: 409,
    PatientNotFound: 404,
    AppointmentNotFound: 404,
    ReminderNotFound: 404,
}


def http_error(exc: SchedulingError) -> HTTPException:
    return HTTPException(status_code=_STATUS_CODES.get(type(exc), 400), detail=str(exc))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    clinic = build_clinic()
    with SessionLocal() as db:
        store.restore_clinic(db, clinic)
    app.state.clinic = clinic
    logger.info("%s ready", CLINIC_NAME)
    yield


app = FastAPI(
    title="Frontdesk",
    description="Dental clinic scheduling and reminder API",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(graphql_app, prefix="/graphql")


@app.get("/health")
def health(clinic: Clinic = Depends(get_clinic)):
    return {
        "status": "ok",
        "patients": len(clinic.directory.all()),
    }


@app.get("/slots/{day}", response_model=SlotsResponse)
def get_slots(
    day: str,
    interval: Optional[int] = Query(None, gt=0),
    clinic: Clinic = Depends(get_clinic),
):
    try:
        parsed = to_date(day)
        grid = clinic.slots.generate_slots(parsed, interval)
        free = set(clinic.book.available_slots(parsed, interval))
    except SchedulingError as exc:
        raise http_error(exc) from exc

    return SlotsResponse(
        day=parsed,
        open=clinic.calendar.is_open(parsed),
        holiday=clinic.calendar.holiday_reason(parsed),
        slots=[SlotView(start=slot, available=slot in free) for slot in grid],
    )


@app.get("/appointments", response_model=list[Appointment])
def list_appointments(
    day: str,
    include_cancelled: bool = True,
    clinic: Clinic = Depends(get_clinic),
):
    try:
        return clinic.book.for_date(day, include_cancelled=include_cancelled)
    except SchedulingError as exc:
        raise http_error(exc) from exc


@app.post("/appointments", response_model=BookResponse, status_code=201)
def book_appointment(
    req: BookRequest,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        appointment = clinic.book.book(
            patient_id=req.patient_id,
            day=req.day,
            start_time=req.start_time,
            duration_minutes=req.duration_minutes,
            treatment=req.treatment,
            source=req.source,
            staff_ids=req.staff_ids,
            notes=req.notes,
        )
    except SchedulingError as exc:
        raise http_error(exc) from exc

    reminders = clinic.book.reminders_for(appointment.id)
    store.save_booking(db, appointment, reminders)
    return BookResponse(appointment=appointment, reminders=reminders)


@app.get("/appointments/{appointment_id}", response_model=Appointment)
def get_appointment(appointment_id: int, clinic: Clinic = Depends(get_clinic)):
    try:
        return clinic.book.get(appointment_id)
    except SchedulingError as exc:
        raise http_error(exc) from exc


@app.post("/appointments/{appointment_id}/status", response_model=Appointment)
def transition_appointment(
    appointment_id: int,
    req: TransitionRequest,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        appointment = clinic.book.transition(appointment_id, req.status)
    except SchedulingError as exc:
        raise http_error(exc) from exc

    store.save_transition(db, clinic, appointment)
    return appointment


@app.get(
    "/appointments/{appointment_id}/reminders", response_model=list[ReminderEvent]
)
def appointment_reminders(appointment_id: int, clinic: Clinic = Depends(get_clinic)):
    try:
        return clinic.book.reminders_for(appointment_id)
    except SchedulingError as exc:
        raise http_error(exc) from exc


@app.patch("/appointments/{appointment_id}", response_model=Appointment)
def update_appointment(
    appointment_id: int,
    req: AppointmentUpdate,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        appointment = clinic.book.get(appointment_id)
        if req.staff_ids is not None:
            appointment = clinic.book.reassign(appointment_id, req.staff_ids)
        if req.notes is not None:
            appointment = clinic.book.annotate(appointment_id, req.notes)
    except SchedulingError as exc:
        raise http_error(exc) from exc

    store.save_appointment(db, appointment)
    return appointment


@app.post(
    "/appointments/{appointment_id}/reminders",
    response_model=list[ReminderEvent],
    status_code=201,
)
def schedule_reminders(
    appointment_id: int,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        created = clinic.book.schedule_reminders(appointment_id)
    except SchedulingError as exc:
        raise http_error(exc) from exc

    store.save_reminders(db, created)
    return created


@app.get("/reminders/due", response_model=list[ReminderEvent])
def due_reminders(clinic: Clinic = Depends(get_clinic)):
    return clinic.book.due_reminders()


@app.post("/reminders/{event_id}/delivery", response_model=ReminderEvent)
def report_delivery(
    event_id: str,
    req: DeliveryReport,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        event = clinic.book.record_delivery(event_id, req.delivered)
    except SchedulingError as exc:
        raise http_error(exc) from exc

    store.save_reminders(db, [event])
    return event


@app.post("/patients", response_model=Patient, status_code=201)
def register_patient(
    req: PatientCreate,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        patient = clinic.directory.register(**req.model_dump())
    except SchedulingError as exc:
        raise http_error(exc) from exc

    store.save_patient(db, patient)
    return patient


@app.get("/patients/{patient_id}", response_model=Patient)
def get_patient(patient_id: int, clinic: Clinic = Depends(get_clinic)):
    try:
        return clinic.directory.get(patient_id)
    except SchedulingError as exc:
        raise http_error(exc) from exc


@app.patch("/patients/{patient_id}", response_model=Patient)
def update_patient(
    patient_id: int,
    req: PatientUpdate,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        patient = clinic.directory.update_contact(
            patient_id, **req.model_dump(exclude_unset=True)
        )
    except SchedulingError as exc:
        raise http_error(exc) from exc

    store.save_patient(db, patient)
    return patient


@app.delete("/patients/{patient_id}", status_code=204)
def delete_patient(
    patient_id: int,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        clinic.book.delete_patient(patient_id)
    except SchedulingError as exc:
        raise http_error(exc) from exc

    store.delete_patient(db, patient_id)
    return Response(status_code=204)


@app.get("/patients/{patient_id}/visits", response_model=list[VisitRecord])
def patient_visits(patient_id: int, clinic: Clinic = Depends(get_clinic)):
    try:
        return clinic.directory.visits(patient_id)
    except SchedulingError as exc:
        raise http_error(exc) from exc


@app.post("/patients/{patient_id}/visit-count", response_model=Patient)
def correct_visit_count(
    patient_id: int,
    req: VisitCountCorrection,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        patient = clinic.directory.correct_visit_count(patient_id, req.count)
    except SchedulingError as exc:
        raise http_error(exc) from exc

    store.save_patient(db, patient)
    return patient


@app.get("/holidays", response_model=list[HolidayView])
def list_holidays(clinic: Clinic = Depends(get_clinic)):
    special = clinic.calendar.holidays.special
    return [HolidayView(day=day, reason=special[day]) for day in sorted(special)]


@app.put("/holidays/{day}", response_model=HolidayView)
def add_holiday(
    day: str,
    req: HolidayRequest,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        parsed = to_date(day)
    except SchedulingError as exc:
        raise http_error(exc) from exc

    clinic.calendar.add_special_holiday(parsed, req.reason)
    store.save_special_holiday(db, parsed, req.reason)
    return HolidayView(day=parsed, reason=req.reason)


@app.delete("/holidays/{day}", status_code=204)
def remove_holiday(
    day: str,
    clinic: Clinic = Depends(get_clinic),
    db: Session = Depends(get_db),
):
    try:
        parsed = to_date(day)
    except SchedulingError as exc:
        raise http_error(exc) from exc

    if not clinic.calendar.remove_special_holiday(parsed):
        raise HTTPException(status_code=404, detail=f"No special holiday on {parsed}")
    store.delete_special_holiday(db, parsed)
    return Response(status_code=204)


@app.post("/identify", response_model=IdentifyResponse)
def identify(req: IdentifyRequest, clinic: Clinic = Depends(get_clinic)):
    result = clinic.identity.identify_contact(req.contact)
    return IdentifyResponse(is_existing=result.is_existing, patient=result.patient)
