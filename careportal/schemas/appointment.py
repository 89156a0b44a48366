from datetime import date, time

from pydantic import BaseModel


class DoctorItem(BaseModel):
    user_id: int
    first_name: str
    last_name: str
    specialty: str = ""
    display_name: str


class PersonRef(BaseModel):
    first_name: str
    last_name: str
    specialty: str | None = None


class AppointmentCreate(BaseModel):
    doctor_id: int
    appointment_date: date
    appointment_time: time
    reason: str | None = None
    # Booking from an analysis result prefills the reason
    analysis_type: str | None = None
    analysis_id: int | None = None


class AppointmentView(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_date: date
    appointment_time: time
    reason: str
    status: str
    status_badge: str
    is_upcoming: bool
    can_cancel: bool = False
    doctor: PersonRef | None = None
    patient: PersonRef | None = None
    actions: list[str] = []


class StatusUpdate(BaseModel):
    status: str
