"""One-time onboarding health history; at most one row per patient."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from careportal.core.clock import utc_now


class PatientQuestionnaire(SQLModel, table=True):
    __tablename__ = "patient_questionnaire"
    id: int | None = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="user.id", unique=True, index=True)
    age: int | None = None
    gender: str | None = None
    chronic_conditions: str | None = None
    medications: str | None = None
    allergies: str | None = None
    primary_concern: str | None = None
    issue_duration: str | None = None
    pain_level: int | None = None
    recent_travel: str | None = None
    past_surgeries: str | None = None
    substance_use: str | None = None
    doctor_contact_preference: bool = False
    created_at: datetime = Field(default_factory=utc_now)
