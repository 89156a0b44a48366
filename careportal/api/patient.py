from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from careportal.api.deps import require_patient
from careportal.api.questionnaire import is_completed
from careportal.core.database import get_db
from careportal.models import Patient, PatientQuestionnaire, User
from careportal.schemas import PatientHistory, PatientMe, QuestionnaireView
from careportal.services.analysis_store import merged_history, to_view

router = APIRouter(prefix="/patient", tags=["patient"])

PROFILE_HISTORY_LIMIT = 50


def _profile(db: Session, user_id: int) -> Patient | None:
    return db.exec(select(Patient).where(Patient.user_id == user_id)).first()


def patient_history(db: Session, patient_id: int) -> PatientHistory:
    """Questionnaire plus every analysis of the patient; shared with the doctor view."""
    profile = _profile(db, patient_id)
    questionnaire = db.exec(
        select(PatientQuestionnaire).where(PatientQuestionnaire.patient_id == patient_id)
    ).first()
    return PatientHistory(
        patient_id=patient_id,
        patient_name=profile.full_name if profile else "",
        questionnaire=QuestionnaireView.model_validate(questionnaire, from_attributes=True) if questionnaire else None,
        analyses=[to_view(row) for row in merged_history(db, patient_id, PROFILE_HISTORY_LIMIT)],
    )


@router.get("/me", response_model=PatientMe)
def me(user: User = Depends(require_patient), db: Session = Depends(get_db)):
    profile = _profile(db, user.id or 0)
    return PatientMe(
        user_id=user.id or 0,
        email=user.email,
        first_name=profile.first_name if profile else "",
        last_name=profile.last_name if profile else "",
        questionnaire_completed=is_completed(db, user.id or 0),
    )


@router.get("/profile", response_model=PatientHistory)
def profile(user: User = Depends(require_patient), db: Session = Depends(get_db)):
    return patient_history(db, user.id or 0)
