from datetime import datetime

from pydantic import BaseModel, Field


class TextAnalysisRequest(BaseModel):
    text: str


class VoiceAnalysisRequest(BaseModel):
    """Speech is transcribed in the browser; only the spoken text reaches the API."""
    spoken_text: str
    audio_duration_seconds: float | None = None
    language: str | None = None


class SymptomView(BaseModel):
    name: str
    confidence: float
    source: str = "model"
    confidence_label: str
    confidence_color: str


class DiseaseView(BaseModel):
    name: str
    confidence: float
    description: str = ""


class WarningView(BaseModel):
    level: str
    title: str
    message: str


class AnalysisView(BaseModel):
    id: int
    type: str
    input: str
    severity: str
    severity_level: str
    severity_color: str
    symptoms: list[SymptomView] = Field(default_factory=list)
    diseases: list[DiseaseView] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    urgency: bool = False
    show_booking: bool = False
    show_nearby_help: bool = False
    warning: WarningView | None = None
    booking_reason: str = ""
    confidence_score: float | None = None
    image_url: str | None = None
    is_reviewed: bool = False
    doctor_notes: str | None = None
    created_at: datetime


class AnalysisHistoryResponse(BaseModel):
    voice: list[AnalysisView] = Field(default_factory=list)
    text: list[AnalysisView] = Field(default_factory=list)
    image: list[AnalysisView] = Field(default_factory=list)


class ReviewRequest(BaseModel):
    doctor_notes: str = ""
