"""Onboarding questionnaire: one-time health history intake, one row per patient."""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from careportal.api.deps import require_patient
from careportal.core.database import get_db
from careportal.core.rate_limit import get_client_ip
from careportal.models import PatientQuestionnaire, User
from careportal.schemas import Question, QuestionnaireStatus, QuestionnaireView
from careportal.services.audit import audit

router = APIRouter(prefix="/questionnaire", tags=["questionnaire"])
ALREADY_COMPLETED_MESSAGE = "Questionnaire already completed."

QUESTIONS: list[Question] = [
    Question(id="age", question="What is your age?", type="number", placeholder="Enter your age"),
    Question(
        id="gender",
        question="What is your gender?",
        type="radio",
        options=["Male", "Female", "Other", "Prefer not to say"],
    ),
    Question(
        id="chronic_conditions",
        question="Do you have any chronic medical conditions?",
        type="textarea",
        placeholder="e.g., Diabetes, Hypertension, Asthma (or type 'None')",
    ),
    Question(
        id="medications",
        question="Are you currently taking any medications?",
        type="textarea",
        placeholder="List medications or type 'None'",
    ),
    Question(id="allergies", question="Do you have any allergies?", type="textarea", placeholder="List allergies or type 'None'"),
    Question(
        id="primary_concern",
        question="What is your primary health concern?",
        type="textarea",
        placeholder="Describe your main health concern",
    ),
    Question(
        id="recent_travel",
        question="Have you traveled recently?",
        type="textarea",
        placeholder="Describe recent travel or type 'None'",
    ),
    Question(
        id="past_surgeries",
        question="Do you have any past surgeries or major health events?",
        type="textarea",
        placeholder="List past surgeries or type 'None'",
    ),
    Question(
        id="substance_use",
        question="Do you smoke or drink?",
        type="radio",
        options=["Never", "Occasionally", "Regularly", "Prefer not to say"],
    ),
    Question(
        id="doctor_contact_preference",
        question="Would you like a doctor to contact you about your concerns?",
        type="radio",
        options=["Yes", "No"],
    ),
]

MAX_AGE = 130


def _existing(db: Session, patient_id: int) -> PatientQuestionnaire | None:
    return db.exec(select(PatientQuestionnaire).where(PatientQuestionnaire.patient_id == patient_id)).first()


def is_completed(db: Session, patient_id: int) -> bool:
    return _existing(db, patient_id) is not None


def _clean_answers(raw: dict) -> dict:
    """Every question needs a non-blank answer; radio answers must be one of the listed options."""
    answers = {}
    for q in QUESTIONS:
        value = raw.get(q.id)
        value = "" if value is None else str(value).strip()
        if not value:
            raise HTTPException(status_code=422, detail=f"Please answer the question before proceeding: {q.question}")
        if q.options and value not in q.options:
            raise HTTPException(status_code=422, detail=f"'{value}' is not a valid answer to: {q.question}")
        answers[q.id] = value
    try:
        age = int(answers["age"])
    except ValueError:
        raise HTTPException(status_code=422, detail="Age must be a whole number.")
    if age < 0 or age > MAX_AGE:
        raise HTTPException(status_code=422, detail="Please enter a valid age.")
    answers["age"] = age
    answers["doctor_contact_preference"] = answers["doctor_contact_preference"] == "Yes"
    return answers


@router.get("/questions", response_model=list[Question])
def questions():
    return QUESTIONS


@router.get("/status", response_model=QuestionnaireStatus)
def status(user: User = Depends(require_patient), db: Session = Depends(get_db)):
    """Onboarding redirect check: completed patients go straight to the dashboard."""
    return QuestionnaireStatus(completed=is_completed(db, user.id or 0))


@router.post("", response_model=QuestionnaireView, status_code=201)
async def submit(
    request: Request,
    user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    """JSON object keyed by question id. Optional extras: issue_duration, pain_level."""
    try:
        raw = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON.")
    if not isinstance(raw, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON.")
    if is_completed(db, user.id or 0):
        raise HTTPException(status_code=409, detail=ALREADY_COMPLETED_MESSAGE)
    answers = _clean_answers(raw)
    pain_level = raw.get("pain_level")
    if pain_level not in (None, ""):
        try:
            pain_level = max(0, min(10, int(pain_level)))
        except (TypeError, ValueError):
            raise HTTPException(status_code=422, detail="Pain level must be a number from 0 to 10.")
    else:
        pain_level = None
    row = PatientQuestionnaire(
        patient_id=user.id,
        issue_duration=(str(raw.get("issue_duration") or "").strip() or None),
        pain_level=pain_level,
        **answers,
    )
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent submit won the unique patient_id
        db.rollback()
        raise HTTPException(status_code=409, detail=ALREADY_COMPLETED_MESSAGE)
    db.refresh(row)
    audit(db, "questionnaire_completed", user.id, get_client_ip(request))
    return QuestionnaireView.model_validate(row, from_attributes=True)


@router.get("", response_model=QuestionnaireView)
def my_questionnaire(user: User = Depends(require_patient), db: Session = Depends(get_db)):
    row = _existing(db, user.id or 0)
    if not row:
        raise HTTPException(status_code=404, detail="Questionnaire not completed yet.")
    return QuestionnaireView.model_validate(row, from_attributes=True)
