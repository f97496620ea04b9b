from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from frontdesk.config import DEFAULT_DURATION_MINUTES


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]


class DeliveryChannel(str, Enum):
    """Media a reminder can go out on, highest priority first."""

    CHAT = "chat"
    EMAIL = "email"
    SMS = "sms"
    PHONE = "phone"


class ContactChannel(str, Enum):
    """Media an inbound contact can arrive on."""

    PHONE = "phone"
    EMAIL = "email"
    CHAT = "chat"
    SOCIAL = "social"


class BookingSource(str, Enum):
    WEB = "web"
    PHONE = "phone"
    CHAT = "chat"
    EMAIL = "email"
    SOCIAL = "social"
    WALK_IN = "walk_in"


class AppointmentStatus(str, Enum):
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReminderKind(str, Enum):
    SEVEN_DAYS = "seven_days"
    THREE_DAYS = "three_days"
    ONE_DAY = "one_day"


class ReminderStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


# -- calendar --


class BusinessHours(BaseModel):
    model_config = {"frozen": True}

    open: time
    close: time
    lunch_start: Optional[time] = None
    lunch_end: Optional[time] = None

    @model_validator(mode="after")
    def _check_order(self):
        if (self.lunch_start is None) != (self.lunch_end is None):
            raise ValueError("lunch_start and lunch_end must be given together")
        if self.lunch_start is None:
            if not self.open < self.close:
                raise ValueError("open must be before close")
        elif not self.open < self.lunch_start < self.lunch_end < self.close:
            raise ValueError("expected open < lunch_start < lunch_end < close")
        return self

    @property
    def has_lunch(self) -> bool:
        return self.lunch_start is not None

    def in_lunch(self, at: time) -> bool:
        return self.has_lunch and self.lunch_start <= at < self.lunch_end


class HolidaySet(BaseModel):
    model_config = {"frozen": True}

    regular: frozenset[Weekday] = frozenset()
    special: dict[date, str] = Field(default_factory=dict)

    def is_holiday(self, day: date) -> bool:
        return Weekday.of(day) in self.regular or day in self.special


# -- patients --


class Patient(BaseModel):
    model_config = {"frozen": True}

    id: int
    patient_number: str = ""
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., pattern=r"^[\d\-\+\(\) ]+$")
    email: Optional[str] = Field(None, pattern=r"^[^@\s]+@[^@\s]+$")
    chat_id: Optional[str] = None
    social_handle: Optional[str] = None
    sms_consent: bool = False
    preferred_contact: tuple[DeliveryChannel, ...] = ()
    visit_count: int = Field(0, ge=0)
    last_visit: Optional[date] = None
    registered_on: Optional[date] = None

    @field_validator("email", "chat_id", "social_handle", mode="before")
    @classmethod
    def _blank_is_missing(cls, value):
        # form posts send "" for untouched contact fields
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def contact_for(self, channel: ContactChannel) -> Optional[str]:
        return {
            ContactChannel.PHONE: self.phone,
            ContactChannel.EMAIL: self.email,
            ContactChannel.CHAT: self.chat_id,
            ContactChannel.SOCIAL: self.social_handle,
        }[channel]


class VisitRecord(BaseModel):
    model_config = {"frozen": True}

    id: str
    patient_id: int
    appointment_id: int
    day: date
    treatment: str
    staff_ids: tuple[int, ...] = ()
    fee: int = Field(0, ge=0)


# -- appointments and reminders --


class Appointment(BaseModel):
    model_config = {"frozen": True}

    id: int
    patient_id: int
    start: datetime
    duration_minutes: int = Field(DEFAULT_DURATION_MINUTES, gt=0)
    treatment: str = Field(..., min_length=1)
    status: AppointmentStatus = AppointmentStatus.BOOKED
    source: BookingSource = BookingSource.WEB
    staff_ids: tuple[int, ...] = ()
    notes: str = ""

    @property
    def day(self) -> date:
        return self.start.date()

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED


class ReminderWindow(BaseModel):
    model_config = {"frozen": True}

    kind: ReminderKind
    offset: timedelta
    enabled: bool = True


class ReminderEvent(BaseModel):
    model_config = {"frozen": True}

    id: str
    appointment_id: int
    patient_id: int
    kind: ReminderKind
    fire_at: datetime
    status: ReminderStatus = ReminderStatus.PENDING
    channel: DeliveryChannel
    message: str
    sent_at: Optional[datetime] = None
    attempts: int = Field(0, ge=0)


# -- identity --


class PhoneContact(BaseModel):
    channel: Literal["phone"] = "phone"
    value: str


class EmailContact(BaseModel):
    channel: Literal["email"] = "email"
    value: str


class ChatContact(BaseModel):
    channel: Literal["chat"] = "chat"
    value: str


class SocialContact(BaseModel):
    channel: Literal["social"] = "social"
    value: str


InboundContact = Annotated[
    Union[PhoneContact, EmailContact, ChatContact, SocialContact],
    Field(discriminator="channel"),
]


class Identification(BaseModel):
    channel: ContactChannel
    contact: str
    patient: Optional[Patient] = None

    @property
    def is_existing(self) -> bool:
        return self.patient is not None


# -- request / response payloads --


class PatientCreate(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None
    chat_id: Optional[str] = None
    social_handle: Optional[str] = None
    sms_consent: bool = False
    preferred_contact: list[DeliveryChannel] = []


class PatientUpdate(BaseModel):
    """Contact edit; only the fields sent are changed."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    chat_id: Optional[str] = None
    social_handle: Optional[str] = None
    sms_consent: Optional[bool] = None
    preferred_contact: Optional[list[DeliveryChannel]] = None


class VisitCountCorrection(BaseModel):
    count: int = Field(..., ge=0)


class BookRequest(BaseModel):
    patient_id: int
    day: date
    start_time: time
    duration_minutes: int = Field(DEFAULT_DURATION_MINUTES, gt=0)
    treatment: str = Field(..., min_length=1)
    source: BookingSource = BookingSource.WEB
    staff_ids: list[int] = []
    notes: str = ""


class BookResponse(BaseModel):
    appointment: Appointment
    reminders: list[ReminderEvent]


class TransitionRequest(BaseModel):
    status: AppointmentStatus


class AppointmentUpdate(BaseModel):
    staff_ids: Optional[list[int]] = None
    notes: Optional[str] = None


class DeliveryReport(BaseModel):
    delivered: bool


class IdentifyRequest(BaseModel):
    contact: InboundContact


class IdentifyResponse(BaseModel):
    is_existing: bool
    patient: Optional[Patient] = None


class HolidayRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=100)


class HolidayView(BaseModel):
    day: date
    reason: str


class SlotView(BaseModel):
    start: time
    available: bool


class SlotsResponse(BaseModel):
    day: date
    open: bool
    holiday: Optional[str] = None
    slots: list[SlotView]
