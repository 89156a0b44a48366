"""
Stored symptom analyses, one table per input modality (voice, text, image).

All three share the result columns of ``AnalysisBase``: detected symptoms and
possible diseases as JSON lists, the stored severity level
(low | moderate | high | critical), the newline-joined recommendations and the
doctor review fields.
"""
from datetime import datetime

from sqlalchemy import JSON
from sqlmodel import Field, SQLModel

from careportal.core.clock import utc_now

ANALYSIS_TYPES = ("voice", "text", "image")


class AnalysisBase(SQLModel):
    patient_id: int = Field(foreign_key="user.id", index=True)
    patient_name: str = ""
    patient_email: str | None = None
    detected_symptoms: list[dict] = Field(default_factory=list, sa_type=JSON)
    possible_diseases: list[dict] = Field(default_factory=list, sa_type=JSON)
    severity_level: str = "moderate"
    ai_recommendations: str | None = None
    confidence_score: float | None = None
    urgency: bool = False
    analysis_model_version: str | None = None
    is_reviewed: bool = False
    reviewed_by_doctor: int | None = None
    doctor_notes: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime | None = Field(default_factory=utc_now)


class VoiceAnalysis(AnalysisBase, table=True):
    __tablename__ = "voice_analyses"
    id: int | None = Field(default=None, primary_key=True)
    spoken_text: str
    audio_duration_seconds: float | None = None
    audio_file_url: str | None = None
    language: str | None = "en"


class TextAnalysis(AnalysisBase, table=True):
    __tablename__ = "text_analyses"
    id: int | None = Field(default=None, primary_key=True)
    input_text: str
    word_count: int | None = None
    follow_up_questions: list[str] = Field(default_factory=list, sa_type=JSON)
    related_body_parts: list[str] = Field(default_factory=list, sa_type=JSON)


class ImageAnalysis(AnalysisBase, table=True):
    __tablename__ = "image_analyses"
    id: int | None = Field(default=None, primary_key=True)
    image_url: str
    image_type: str | None = "skin"
    body_part: str | None = None
    image_description: str | None = None
    detected_conditions: list[dict] = Field(default_factory=list, sa_type=JSON)
    affected_area_percentage: float | None = None


ANALYSIS_MODELS: dict[str, type[AnalysisBase]] = {
    "voice": VoiceAnalysis,
    "text": TextAnalysis,
    "image": ImageAnalysis,
}
