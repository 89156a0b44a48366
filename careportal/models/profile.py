"""Patient and doctor profiles; one row per user, keyed by user_id."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from careportal.core.clock import utc_now


class Patient(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Doctor(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)
    first_name: str = ""
    last_name: str = ""
    specialty: str = ""
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
