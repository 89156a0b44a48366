"""Appointment queries, views and status changes shared by the patient and doctor routers."""
import logging
from datetime import datetime

from fastapi import HTTPException
from sqlmodel import Session, select

from careportal.core.clock import utc_now
from careportal.core.triage import appointment_status_badge, doctor_appointment_status_badge
from careportal.models import STATUS_TRANSITIONS, Appointment, Doctor, Patient
from careportal.schemas import AppointmentView, PersonRef
from careportal.services.feed import appointment_feed

log = logging.getLogger(__name__)

UNKNOWN_DOCTOR = PersonRef(first_name="Unknown", last_name="Doctor", specialty="")
UNKNOWN_PATIENT = PersonRef(first_name="Unknown", last_name="Patient")


def is_upcoming(appt: Appointment, now: datetime | None = None) -> bool:
    return appt.starts_at > (now or datetime.now())


def can_cancel(appt: Appointment, now: datetime | None = None) -> bool:
    """Patients may cancel only pending appointments that have not started yet."""
    return appt.status == "pending" and is_upcoming(appt, now)


def allowed_actions(status: str) -> list[str]:
    return list(STATUS_TRANSITIONS.get(status, ()))


def doctors_by_user_id(db: Session, user_ids: set[int]) -> dict[int, Doctor]:
    if not user_ids:
        return {}
    return {d.user_id: d for d in db.exec(select(Doctor).where(Doctor.user_id.in_(user_ids))).all()}


def patients_by_user_id(db: Session, user_ids: set[int]) -> dict[int, Patient]:
    if not user_ids:
        return {}
    return {p.user_id: p for p in db.exec(select(Patient).where(Patient.user_id.in_(user_ids))).all()}


def to_view(
    appt: Appointment,
    doctor: Doctor | None = None,
    patient: Patient | None = None,
    now: datetime | None = None,
    for_doctor: bool = False,
) -> AppointmentView:
    badge = doctor_appointment_status_badge if for_doctor else appointment_status_badge
    return AppointmentView(
        id=appt.id or 0,
        patient_id=appt.patient_id,
        doctor_id=appt.doctor_id,
        appointment_date=appt.appointment_date,
        appointment_time=appt.appointment_time,
        reason=appt.reason or "",
        status=appt.status,
        status_badge=badge(appt.status),
        is_upcoming=is_upcoming(appt, now),
        can_cancel=can_cancel(appt, now),
        doctor=PersonRef(first_name=doctor.first_name, last_name=doctor.last_name, specialty=doctor.specialty)
        if doctor
        else UNKNOWN_DOCTOR,
        patient=PersonRef(first_name=patient.first_name, last_name=patient.last_name) if patient else UNKNOWN_PATIENT,
        actions=allowed_actions(appt.status),
    )


def views_with_people(db: Session, appointments: list[Appointment], for_doctor: bool = False) -> list[AppointmentView]:
    doctors = doctors_by_user_id(db, {a.doctor_id for a in appointments})
    patients = patients_by_user_id(db, {a.patient_id for a in appointments})
    now = datetime.now()
    return [to_view(a, doctors.get(a.doctor_id), patients.get(a.patient_id), now, for_doctor) for a in appointments]


def set_status(db: Session, appt: Appointment, new_status: str) -> Appointment:
    """Persists the new status and notifies the doctor's dashboard listeners."""
    old_status = appt.status
    appt.status = new_status
    appt.updated_at = utc_now()
    db.add(appt)
    db.commit()
    db.refresh(appt)
    log.info("appointment_id=%s status %s -> %s", appt.id, old_status, new_status)
    appointment_feed.publish(appt.doctor_id, "UPDATE", appt.id or 0, appt.status)
    return appt


def transition(db: Session, appt: Appointment, new_status: str) -> Appointment:
    """Doctor-side status change; only transitions listed in STATUS_TRANSITIONS are accepted."""
    if new_status not in allowed_actions(appt.status):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot change a {appt.status} appointment to {new_status}.",
        )
    return set_status(db, appt, new_status)


def cancel_by_patient(db: Session, appt: Appointment) -> Appointment:
    if not can_cancel(appt):
        raise HTTPException(status_code=409, detail="Only pending upcoming appointments can be cancelled.")
    return set_status(db, appt, "cancelled")


def doctor_patient_ids(db: Session, doctor_id: int) -> set[int]:
    stmt = select(Appointment.patient_id).where(Appointment.doctor_id == doctor_id)
    return set(db.exec(stmt).all())
