from datetime import datetime

from sqlmodel import Field, SQLModel

from careportal.core.clock import utc_now

ROLE_PATIENT = "patient"
ROLE_DOCTOR = "doctor"
ROLES = (ROLE_PATIENT, ROLE_DOCTOR)


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    hashed_password: str
    role: str = Field(default=ROLE_PATIENT, index=True)  # "patient" | "doctor"
    created_at: datetime | None = Field(default_factory=utc_now)
    is_banned: bool = False
    last_login_at: datetime | None = None
