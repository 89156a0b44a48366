import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# .env is loaded from the project root wherever uvicorn is started
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlmodel import Session

from careportal.api.analysis import router as analysis_router
from careportal.api.appointments import router as appointments_router
from careportal.api.auth import router as auth_router
from careportal.api.doctor import router as doctor_router
from careportal.api.events import router as events_router
from careportal.api.nearby import router as nearby_router
from careportal.api.patient import router as patient_router
from careportal.api.questionnaire import router as questionnaire_router
from careportal.core.config import is_analysis_configured, is_openai_configured, settings
from careportal.core.database import engine, init_db, ping_db
from careportal.core.rate_limit import get_client_ip, limiter
from careportal.logging import setup_logging
from careportal.models import ErrorLog, SecurityLog

setup_logging(level=settings.log_level)
log = logging.getLogger("careportal")


def _cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.analysis_api_url:
        log.info("Analysis API: %s", settings.analysis_api_url)
    elif is_openai_configured():
        log.info("Analysis API not set; using OpenAI model %s", settings.openai_model)
    else:
        log.warning("Neither ANALYSIS_API_URL nor OPENAI_API_KEY is set; analysis requests will fail with 503")
    yield


app = FastAPI(
    title="CarePortal API",
    description="Symptom analysis, triage and appointment booking for patients and doctors",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": detail, "status_code": status_code}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    try:
        with Session(engine) as db:
            db.add(SecurityLog(
                event="rate_limit",
                ip=get_client_ip(request) or None,
                endpoint=request.url.path,
                detail="Rate limit exceeded",
            ))
            db.commit()
    except Exception as e:
        log.warning("SecurityLog rate_limit write failed: %s", e)
    rid = getattr(request.state, "request_id", None)
    body = {"error": "Too many requests", "detail": f"Rate limit exceeded: {exc.detail}", "status_code": 429}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=429, content=body)


def _validation_error_message(exc: RequestValidationError) -> str:
    errs = exc.errors()
    if not errs:
        return "Invalid request."
    first = errs[0]
    loc = list(first.get("loc") or [])
    field = str(loc[-1]) if loc else None
    if first.get("type") == "missing":
        if field == "file":
            return "No file was sent. Please choose an image and try again."
        if field == "body":
            return "The request body is missing."
        return f"Missing field: {field}" if field else "A required field is missing."
    msg = first.get("msg") or "Invalid request."
    # pydantic prefixes custom validator errors
    return msg.removeprefix("Value error, ")


def _jsonable_errors(errs) -> list[dict]:
    # ctx may carry the raised ValueError itself
    return [{k: v for k, v in e.items() if k in ("type", "loc", "msg")} for e in errs]


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning("Request validation error (422): path=%s method=%s detail=%s", request.url.path, request.method, errs)
    rid = getattr(request.state, "request_id", None)
    body = {"error": _validation_error_message(exc), "status_code": 422, "detail": _jsonable_errors(errs)}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=422, content=body)


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc, exc_info=True)
    try:
        with Session(engine) as db:
            db.add(ErrorLog(
                user_id=None,
                endpoint=request.url.path,
                method=request.method,
                error_message=str(exc)[:2000],
                stack_trace=traceback.format_exc()[:10000],
            ))
            db.commit()
    except Exception as e:
        log.warning("ErrorLog write failed: %s", e)
    path = (request.url.path or "").strip()
    user_msg = "An error occurred during analysis." if path.startswith("/analysis") else "Unexpected server error."
    return _error_response(request, 500, user_msg)


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(analysis_router)
app.include_router(questionnaire_router)
app.include_router(patient_router)
app.include_router(appointments_router)
app.include_router(doctor_router)
app.include_router(nearby_router)
app.include_router(events_router)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "database": "ok" if ping_db() else "error",
        "analysis_configured": is_analysis_configured(),
    }


@app.get("/debug/rate-test")
@limiter.limit("5/minute")
def rate_test(request: Request):
    return {"ok": True}
