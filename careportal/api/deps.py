from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from careportal.core.database import get_db
from careportal.core.security import decode_access_token
from careportal.models import ROLE_DOCTOR, ROLE_PATIENT, User

security = HTTPBearer(auto_error=False)


def _user_id_from_token(token: str | None) -> int:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please log in.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
        )
    return int(payload["sub"])


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> int:
    return _user_id_from_token(credentials.credentials if credentials else None)


def _load_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    if getattr(user, "is_banned", False):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your account has been suspended.")
    return user


def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    return _load_user(db, user_id)


def require_patient(user: User = Depends(get_current_user)) -> User:
    if user.role != ROLE_PATIENT:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Patient account required.")
    return user


def require_doctor(user: User = Depends(get_current_user)) -> User:
    if user.role != ROLE_DOCTOR:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Doctor account required.")
    return user


def require_stream_doctor(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    token: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> User:
    """EventSource cannot send headers, so the change stream also accepts ?token=."""
    raw = credentials.credentials if credentials else token
    user = _load_user(db, _user_id_from_token(raw))
    if user.role != ROLE_DOCTOR:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Doctor account required.")
    return user
