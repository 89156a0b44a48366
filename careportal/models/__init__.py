from .analysis import ANALYSIS_MODELS, ANALYSIS_TYPES, AnalysisBase, ImageAnalysis, TextAnalysis, VoiceAnalysis
from .appointment import APPOINTMENT_STATUSES, STATUS_TRANSITIONS, Appointment
from .logs import AuditLog, ErrorLog, SecurityLog
from .medical_record import RECORD_TYPES, MedicalRecord
from .profile import Doctor, Patient
from .questionnaire import PatientQuestionnaire
from .user import ROLE_DOCTOR, ROLE_PATIENT, ROLES, User

__all__ = [
    "ANALYSIS_MODELS",
    "ANALYSIS_TYPES",
    "APPOINTMENT_STATUSES",
    "RECORD_TYPES",
    "ROLES",
    "ROLE_DOCTOR",
    "ROLE_PATIENT",
    "STATUS_TRANSITIONS",
    "AnalysisBase",
    "Appointment",
    "AuditLog",
    "Doctor",
    "ErrorLog",
    "ImageAnalysis",
    "MedicalRecord",
    "Patient",
    "PatientQuestionnaire",
    "SecurityLog",
    "TextAnalysis",
    "User",
    "VoiceAnalysis",
]
