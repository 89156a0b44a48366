from pydantic import BaseModel

from .analysis import AnalysisView
from .questionnaire import QuestionnaireView


class PatientMe(BaseModel):
    user_id: int
    email: str
    first_name: str
    last_name: str
    questionnaire_completed: bool


class DoctorMe(BaseModel):
    user_id: int
    email: str
    first_name: str
    last_name: str
    specialty: str = ""


class PatientHistory(BaseModel):
    """Questionnaire plus analyses across all modalities, newest first."""
    patient_id: int
    patient_name: str
    questionnaire: QuestionnaireView | None = None
    analyses: list[AnalysisView] = []
