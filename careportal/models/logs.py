"""Operational logs: audit events, security events and unhandled errors."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from careportal.core.clock import utc_now


class AuditLog(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    event: str = Field(index=True)  # login, register, analyze_text, book_appointment, ...
    user_id: int | None = Field(default=None, index=True)
    ip: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class SecurityLog(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    event: str = Field(index=True)  # failed_login, rate_limit, forbidden
    user_id: int | None = Field(default=None, index=True)
    ip: str | None = None
    endpoint: str | None = None
    detail: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class ErrorLog(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    user_id: int | None = Field(default=None, index=True)
    endpoint: str | None = None
    method: str | None = None
    error_message: str | None = None
    stack_trace: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
