from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from careportal.api.deps import get_current_user
from careportal.core.clock import utc_now
from careportal.core.config import settings
from careportal.core.database import get_db
from careportal.core.rate_limit import get_client_ip, limiter
from careportal.core.security import create_access_token, hash_password, verify_password
from careportal.models import ROLE_DOCTOR, ROLE_PATIENT, ROLES, Doctor, Patient, User
from careportal.schemas import Token, UserResponse
from careportal.services.audit import audit, security_event

router = APIRouter(prefix="/auth", tags=["auth"])
_REGISTER_LIMIT = f"{settings.rate_limit_register_per_minute}/minute;{settings.rate_limit_register_per_hour}/hour"
_LOGIN_LIMIT = f"{settings.rate_limit_login_per_minute}/minute;{settings.rate_limit_login_per_hour}/hour"
MIN_PASSWORD_LENGTH = 6
DUPLICATE_EMAIL_MESSAGE = "This email address is already registered."


def user_response(db: Session, user: User) -> UserResponse:
    if user.role == ROLE_DOCTOR:
        profile = db.exec(select(Doctor).where(Doctor.user_id == user.id)).first()
        specialty = profile.specialty if profile else ""
    else:
        profile = db.exec(select(Patient).where(Patient.user_id == user.id)).first()
        specialty = None
    return UserResponse(
        id=user.id or 0,
        email=user.email,
        role=user.role,
        first_name=profile.first_name if profile else "",
        last_name=profile.last_name if profile else "",
        specialty=specialty,
    )


def email_taken(db: Session, email: str) -> bool:
    return db.exec(select(User).where(User.email == email)).first() is not None


@router.post("/register", response_model=UserResponse)
@limiter.limit(_REGISTER_LIMIT)
async def register(
    request: Request,
    db: Session = Depends(get_db),
):
    """Creates the account and its patient or doctor profile (form fields)."""
    form = await request.form()
    email = (form.get("email") or "").strip()
    password = form.get("password") or ""
    first_name = (form.get("first_name") or "").strip()
    last_name = (form.get("last_name") or "").strip()
    role = (form.get("role") or ROLE_PATIENT).strip().lower()
    specialty = (form.get("specialty") or "").strip()
    phone = (form.get("phone") or "").strip() or None
    if not first_name or not last_name:
        raise HTTPException(status_code=422, detail="Please enter your first and last name.")
    if not email:
        raise HTTPException(status_code=422, detail="Please enter your email address.")
    try:
        email = validate_email(email, check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise HTTPException(status_code=422, detail="Please enter a valid email address.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(status_code=422, detail="Password must be at least 6 characters.")
    if role not in ROLES:
        raise HTTPException(status_code=422, detail="Role must be patient or doctor.")
    if email_taken(db, email):
        raise HTTPException(status_code=400, detail=DUPLICATE_EMAIL_MESSAGE)
    user = User(email=email, hashed_password=hash_password(password), role=role)
    db.add(user)
    try:
        # user and profile are written in one transaction
        db.flush()
        if role == ROLE_DOCTOR:
            db.add(Doctor(user_id=user.id, first_name=first_name, last_name=last_name, specialty=specialty))
        else:
            db.add(Patient(user_id=user.id, first_name=first_name, last_name=last_name, phone=phone))
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail=DUPLICATE_EMAIL_MESSAGE)
    db.refresh(user)
    audit(db, "register", user.id, get_client_ip(request))
    return user_response(db, user)


@router.post("/login", response_model=Token)
@limiter.limit(_LOGIN_LIMIT)
async def login(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    email = (form.get("email") or "").strip().lower()
    password = form.get("password") or ""
    if not email:
        raise HTTPException(status_code=422, detail="Please enter your email address.")
    if not password:
        raise HTTPException(status_code=422, detail="Please enter your password.")
    user = db.exec(select(User).where(User.email == email)).first()
    ip = get_client_ip(request)
    if not user or not verify_password(password, user.hashed_password):
        security_event(db, "failed_login", ip, "/auth/login", detail=email)
        raise HTTPException(status_code=401, detail="Incorrect email or password.")
    if user.is_banned:
        security_event(db, "failed_login", ip, "/auth/login", detail="banned", user_id=user.id)
        raise HTTPException(status_code=403, detail="Your account has been suspended.")
    user.last_login_at = utc_now()
    db.add(user)
    db.commit()
    db.refresh(user)
    audit(db, "login", user.id, ip)
    return Token(access_token=create_access_token(user.id or 0, user.role), role=user.role)


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return user_response(db, user)
