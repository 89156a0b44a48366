"""Appointment lifecycle: pending -> confirmed | cancelled; confirmed -> completed | rescheduled."""
from datetime import date, datetime, time

from sqlmodel import Field, SQLModel

from careportal.core.clock import utc_now

APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled", "rescheduled")

STATUS_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("completed", "rescheduled"),
}


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: int | None = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="user.id", index=True)
    doctor_id: int = Field(foreign_key="user.id", index=True)
    appointment_date: date = Field(index=True)
    appointment_time: time
    reason: str = ""
    status: str = Field(default="pending", index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = Field(default_factory=utc_now)

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.appointment_date, self.appointment_time)
