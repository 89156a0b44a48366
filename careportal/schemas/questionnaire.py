from datetime import datetime

from pydantic import BaseModel


class Question(BaseModel):
    id: str
    question: str
    type: str  # number | radio | textarea
    placeholder: str | None = None
    options: list[str] | None = None


class QuestionnaireStatus(BaseModel):
    completed: bool


class QuestionnaireView(BaseModel):
    id: int
    patient_id: int
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
    created_at: datetime
