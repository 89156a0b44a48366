"""Doctor dashboard: appointment queue, patients, records and analysis review."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session, select

from careportal.api.deps import require_doctor
from careportal.api.patient import patient_history
from careportal.core.database import get_db
from careportal.core.rate_limit import get_client_ip
from careportal.models import APPOINTMENT_STATUSES, ROLE_PATIENT, Appointment, Doctor, MedicalRecord, Patient, User
from careportal.schemas import (
    AnalysisView,
    AppointmentView,
    DoctorMe,
    PatientHistory,
    PatientItem,
    RecordCreate,
    RecordView,
    ReviewRequest,
    StatusUpdate,
)
from careportal.services import appointments as appointment_service
from careportal.services.analysis_store import get_analysis, mark_reviewed, to_view
from careportal.services.audit import audit

log = logging.getLogger(__name__)

router = APIRouter(prefix="/doctor", tags=["doctor"])


def _ensure_own_patient(db: Session, doctor_id: int, patient_id: int) -> None:
    if patient_id not in appointment_service.doctor_patient_ids(db, doctor_id):
        raise HTTPException(status_code=403, detail="This patient has no appointment with you.")


@router.get("/me", response_model=DoctorMe)
def me(user: User = Depends(require_doctor), db: Session = Depends(get_db)):
    profile = db.exec(select(Doctor).where(Doctor.user_id == user.id)).first()
    return DoctorMe(
        user_id=user.id or 0,
        email=user.email,
        first_name=profile.first_name if profile else "",
        last_name=profile.last_name if profile else "",
        specialty=(profile.specialty or "") if profile else "",
    )


@router.get("/appointments", response_model=list[AppointmentView])
def appointments(
    status: str = "all",
    user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    """Soonest first; ``status`` filters to one status or ``all``."""
    stmt = select(Appointment).where(Appointment.doctor_id == user.id)
    if status != "all":
        if status not in APPOINTMENT_STATUSES:
            raise HTTPException(status_code=422, detail=f"Unknown status filter: {status}")
        stmt = stmt.where(Appointment.status == status)
    stmt = stmt.order_by(Appointment.appointment_date, Appointment.appointment_time)
    return appointment_service.views_with_people(db, list(db.exec(stmt).all()), for_doctor=True)


@router.patch("/appointments/{appointment_id}", response_model=AppointmentView)
def update_appointment(
    request: Request,
    appointment_id: int,
    body: StatusUpdate,
    user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    if body.status not in APPOINTMENT_STATUSES:
        raise HTTPException(status_code=422, detail=f"Unknown status: {body.status}")
    appt = db.get(Appointment, appointment_id)
    if not appt or appt.doctor_id != user.id:
        raise HTTPException(status_code=404, detail="Appointment not found.")
    appt = appointment_service.transition(db, appt, body.status)
    audit(db, f"appointment_{body.status}", user.id, get_client_ip(request))
    return appointment_service.views_with_people(db, [appt], for_doctor=True)[0]


@router.get("/patients", response_model=list[PatientItem])
def patients(user: User = Depends(require_doctor), db: Session = Depends(get_db)):
    """Patients with at least one appointment with this doctor, by name."""
    ids = appointment_service.doctor_patient_ids(db, user.id or 0)
    if not ids:
        return []
    rows = db.exec(select(Patient).where(Patient.user_id.in_(ids)).order_by(Patient.first_name, Patient.last_name)).all()
    return [PatientItem(user_id=p.user_id, first_name=p.first_name, last_name=p.last_name) for p in rows]


@router.get("/records", response_model=list[RecordView])
def records(
    patient_id: int | None = None,
    user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    stmt = select(MedicalRecord).where(MedicalRecord.doctor_id == user.id)
    if patient_id is not None:
        stmt = stmt.where(MedicalRecord.patient_id == patient_id)
    stmt = stmt.order_by(MedicalRecord.created_at.desc())
    return [RecordView.model_validate(r, from_attributes=True) for r in db.exec(stmt).all()]


@router.post("/records", response_model=RecordView, status_code=201)
def create_record(
    request: Request,
    body: RecordCreate,
    user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    _ensure_own_patient(db, user.id or 0, body.patient_id)
    record = MedicalRecord(
        patient_id=body.patient_id,
        doctor_id=user.id,
        record_type=body.record_type,
        title=body.title,
        description=body.description.strip(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    log.info("medical record id=%s patient_id=%s doctor_id=%s", record.id, body.patient_id, user.id)
    audit(db, "create_record", user.id, get_client_ip(request))
    return RecordView.model_validate(record, from_attributes=True)


@router.get("/patients/{patient_id}/history", response_model=PatientHistory)
def patient_detail(patient_id: int, user: User = Depends(require_doctor), db: Session = Depends(get_db)):
    patient = db.get(User, patient_id)
    if not patient or patient.role != ROLE_PATIENT:
        raise HTTPException(status_code=404, detail="Patient not found.")
    _ensure_own_patient(db, user.id or 0, patient_id)
    return patient_history(db, patient_id)


@router.post("/analyses/{analysis_type}/{analysis_id}/review", response_model=AnalysisView)
def review_analysis(
    request: Request,
    analysis_type: str,
    analysis_id: int,
    body: ReviewRequest,
    user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    row = get_analysis(db, analysis_type, analysis_id)
    if not row:
        raise HTTPException(status_code=404, detail="Analysis not found.")
    _ensure_own_patient(db, user.id or 0, row.patient_id)
    row = mark_reviewed(db, row, user.id or 0, body.doctor_notes)
    audit(db, "review_analysis", user.id, get_client_ip(request))
    return to_view(row)
