from .analysis import (
    AnalysisHistoryResponse,
    AnalysisView,
    DiseaseView,
    ReviewRequest,
    SymptomView,
    TextAnalysisRequest,
    VoiceAnalysisRequest,
    WarningView,
)
from .appointment import AppointmentCreate, AppointmentView, DoctorItem, PersonRef, StatusUpdate
from .auth import Token, UserResponse
from .nearby import NearbyPlace, NearbyRequest, NearbyResponse, PlaceLocation
from .profile import DoctorMe, PatientHistory, PatientMe
from .questionnaire import Question, QuestionnaireStatus, QuestionnaireView
from .records import PatientItem, RecordCreate, RecordView

__all__ = [
    "AnalysisHistoryResponse",
    "AnalysisView",
    "AppointmentCreate",
    "AppointmentView",
    "DiseaseView",
    "DoctorItem",
    "DoctorMe",
    "NearbyPlace",
    "NearbyRequest",
    "NearbyResponse",
    "PatientHistory",
    "PatientItem",
    "PatientMe",
    "PersonRef",
    "PlaceLocation",
    "Question",
    "QuestionnaireStatus",
    "QuestionnaireView",
    "RecordCreate",
    "RecordView",
    "ReviewRequest",
    "StatusUpdate",
    "SymptomView",
    "TextAnalysisRequest",
    "Token",
    "UserResponse",
    "VoiceAnalysisRequest",
    "WarningView",
]
