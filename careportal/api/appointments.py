"""Patient side of booking: doctor list, booking, own appointments and cancellation."""
import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session, select

from careportal.api.deps import get_current_user, require_patient
from careportal.core.database import get_db
from careportal.core.rate_limit import get_client_ip
from careportal.core.triage import booking_reason, triage_from_level
from careportal.models import Appointment, Doctor, User
from careportal.schemas import AppointmentCreate, AppointmentView, DoctorItem
from careportal.services import appointments as appointment_service
from careportal.services.analysis_store import get_analysis
from careportal.services.audit import audit
from careportal.services.feed import appointment_feed

log = logging.getLogger(__name__)

router = APIRouter(tags=["appointments"])


def _display_name(doctor: Doctor) -> str:
    name = f"Dr. {doctor.first_name} {doctor.last_name}".strip()
    return f"{name} - {doctor.specialty}" if doctor.specialty else name


@router.get("/doctors", response_model=list[DoctorItem])
def list_doctors(_: User = Depends(get_current_user), db: Session = Depends(get_db)):
    doctors = db.exec(select(Doctor).order_by(Doctor.first_name)).all()
    return [
        DoctorItem(
            user_id=d.user_id,
            first_name=d.first_name,
            last_name=d.last_name,
            specialty=d.specialty or "",
            display_name=_display_name(d),
        )
        for d in doctors
    ]


def _reason_from_analysis(db: Session, patient_id: int, analysis_type: str, analysis_id: int) -> str:
    row = get_analysis(db, analysis_type, analysis_id)
    if not row or row.patient_id != patient_id:
        raise HTTPException(status_code=404, detail="Analysis not found.")
    symptoms = [s.get("symptom") or s.get("name") or "" for s in row.detected_symptoms or []]
    return booking_reason(symptoms, triage_from_level(row.severity_level))


@router.post("/appointments", response_model=AppointmentView, status_code=201)
def book_appointment(
    request: Request,
    body: AppointmentCreate,
    user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    doctor = db.exec(select(Doctor).where(Doctor.user_id == body.doctor_id)).first()
    if not doctor:
        raise HTTPException(status_code=404, detail="Doctor not found.")
    if body.appointment_date < date.today():
        raise HTTPException(status_code=422, detail="Appointment date cannot be in the past.")
    reason = (body.reason or "").strip()
    if not reason and body.analysis_type and body.analysis_id:
        reason = _reason_from_analysis(db, user.id or 0, body.analysis_type, body.analysis_id)
    appt = Appointment(
        patient_id=user.id,
        doctor_id=doctor.user_id,
        appointment_date=body.appointment_date,
        appointment_time=body.appointment_time,
        reason=reason,
        status="pending",
    )
    db.add(appt)
    db.commit()
    db.refresh(appt)
    log.info("appointment booked id=%s patient_id=%s doctor_id=%s", appt.id, user.id, doctor.user_id)
    appointment_feed.publish(doctor.user_id, "INSERT", appt.id or 0, appt.status)
    audit(db, "book_appointment", user.id, get_client_ip(request))
    return appointment_service.views_with_people(db, [appt])[0]


@router.get("/appointments/mine", response_model=list[AppointmentView])
def my_appointments(user: User = Depends(require_patient), db: Session = Depends(get_db)):
    stmt = (
        select(Appointment)
        .where(Appointment.patient_id == user.id)
        .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
    )
    return appointment_service.views_with_people(db, list(db.exec(stmt).all()))


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentView)
def cancel_appointment(
    request: Request,
    appointment_id: int,
    user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    appt = db.get(Appointment, appointment_id)
    if not appt or appt.patient_id != user.id:
        raise HTTPException(status_code=404, detail="Appointment not found.")
    appt = appointment_service.cancel_by_patient(db, appt)
    audit(db, "cancel_appointment", user.id, get_client_ip(request))
    return appointment_service.views_with_people(db, [appt])[0]
