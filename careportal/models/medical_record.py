from datetime import datetime

from sqlmodel import Field, SQLModel

from careportal.core.clock import utc_now

RECORD_TYPES = ("diagnosis", "lab_report", "imaging", "prescription", "consultation_note", "other")


class MedicalRecord(SQLModel, table=True):
    __tablename__ = "medical_records"
    id: int | None = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="user.id", index=True)
    doctor_id: int = Field(foreign_key="user.id", index=True)
    record_type: str = "consultation_note"
    title: str
    description: str = ""
    created_at: datetime = Field(default_factory=utc_now)
