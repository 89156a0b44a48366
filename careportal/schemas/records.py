from datetime import datetime

from pydantic import BaseModel, field_validator

from careportal.models import RECORD_TYPES


class PatientItem(BaseModel):
    user_id: int
    first_name: str
    last_name: str


class RecordCreate(BaseModel):
    patient_id: int
    record_type: str = "consultation_note"
    title: str
    description: str = ""

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Please provide a title.")
        return v.strip()

    @field_validator("record_type")
    @classmethod
    def known_record_type(cls, v: str) -> str:
        if v not in RECORD_TYPES:
            raise ValueError(f"record_type must be one of: {', '.join(RECORD_TYPES)}")
        return v


class RecordView(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    record_type: str
    title: str
    description: str
    created_at: datetime
