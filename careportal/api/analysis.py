"""Symptom analysis: text, voice (transcribed) and image input, plus the patient's history."""
import logging
import time

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlmodel import Session

from careportal.api.deps import get_current_user, require_patient
from careportal.core.config import settings
from careportal.core.database import get_db
from careportal.core.rate_limit import get_client_ip, limiter
from careportal.models import ANALYSIS_TYPES, ROLE_DOCTOR, ImageAnalysis, User
from careportal.schemas import AnalysisHistoryResponse, AnalysisView, TextAnalysisRequest, VoiceAnalysisRequest
from careportal.services.analysis_store import (
    analysis_history,
    get_analysis,
    save_image_analysis,
    save_text_analysis,
    save_voice_analysis,
    to_view,
)
from careportal.services.analyze import analyze_image, analyze_symptoms
from careportal.services.appointments import doctor_patient_ids
from careportal.services.audit import audit
from careportal.services.storage import store_analysis_image, stored_image_path

log = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])
_ANALYSIS_LIMIT = f"{settings.rate_limit_per_minute}/minute"

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
MIME_MAP = {".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".png": "image/png", ".webp": "image/webp"}


@router.post("/text", response_model=AnalysisView)
@limiter.limit(_ANALYSIS_LIMIT)
def analyze_text(
    request: Request,
    body: TextAnalysisRequest,
    user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    text = body.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Please describe your symptoms.")
    t0 = time.perf_counter()
    response = analyze_symptoms(text, input_type="text")
    row = save_text_analysis(db, user, text, response)
    log.info("analysis type=text id=%s severity=%s latency_ms=%.0f", row.id, row.severity_level, (time.perf_counter() - t0) * 1000)
    audit(db, "analyze_text", user.id, get_client_ip(request))
    return to_view(row)


@router.post("/voice", response_model=AnalysisView)
@limiter.limit(_ANALYSIS_LIMIT)
def analyze_voice(
    request: Request,
    body: VoiceAnalysisRequest,
    user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    spoken_text = body.spoken_text.strip()
    if not spoken_text:
        raise HTTPException(status_code=400, detail="No speech was recognised. Please try again.")
    response = analyze_symptoms(spoken_text, input_type="voice")
    row = save_voice_analysis(
        db,
        user,
        spoken_text,
        response,
        audio_duration_seconds=body.audio_duration_seconds,
        language=body.language,
    )
    log.info("analysis type=voice id=%s severity=%s", row.id, row.severity_level)
    audit(db, "analyze_voice", user.id, get_client_ip(request))
    return to_view(row)


@router.post("/image", response_model=AnalysisView)
@limiter.limit(_ANALYSIS_LIMIT)
async def analyze_image_upload(
    request: Request,
    file: UploadFile = File(...),
    user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    """multipart/form-data with a ``file`` field (JPG, PNG or WEBP)."""
    filename = file.filename or ""
    if not filename:
        raise HTTPException(status_code=400, detail="Please choose an image.")
    ext = "." + filename.lower().rsplit(".", 1)[-1] if "." in filename else ""
    if ext not in IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Only JPG, PNG or WEBP images can be analyzed.")
    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="The image is empty.")
    if len(content) > settings.upload_max_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"Images can be at most {settings.upload_max_mb} MB.")
    # analysis, file write and insert block; keep them off the event loop
    response = await run_in_threadpool(analyze_image, content, filename, MIME_MAP[ext])
    image_ref = await run_in_threadpool(store_analysis_image, user.id or 0, filename, content)
    row = await run_in_threadpool(save_image_analysis, db, user, image_ref, filename, response)
    log.info("analysis type=image id=%s severity=%s stored=%s", row.id, row.severity_level, image_ref)
    audit(db, "analyze_image", user.id, get_client_ip(request))
    return to_view(row)


@router.get("/image/{analysis_id}/file")
def image_file(
    analysis_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The uploaded image, for the patient who sent it or a doctor they have an appointment with."""
    row = db.get(ImageAnalysis, analysis_id)
    if not row:
        raise HTTPException(status_code=404, detail="Image not found.")
    if user.role == ROLE_DOCTOR:
        if row.patient_id not in doctor_patient_ids(db, user.id or 0):
            raise HTTPException(status_code=403, detail="This patient has no appointment with you.")
    elif row.patient_id != user.id:
        raise HTTPException(status_code=404, detail="Image not found.")
    path = stored_image_path(row.image_url)
    if path is None:
        raise HTTPException(status_code=404, detail="Image not found.")
    return FileResponse(path, media_type=MIME_MAP.get(path.suffix.lower()))


@router.get("/history", response_model=AnalysisHistoryResponse)
def history(
    limit: int = 20,
    user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    limit = max(1, min(limit, 100))
    rows = analysis_history(db, user.id or 0, limit)
    return AnalysisHistoryResponse(**{name: [to_view(r) for r in rows[name]] for name in ANALYSIS_TYPES})


@router.get("/{analysis_type}/{analysis_id}", response_model=AnalysisView)
def analysis_detail(
    analysis_type: str,
    analysis_id: int,
    user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    row = get_analysis(db, analysis_type, analysis_id)
    if not row or row.patient_id != user.id:
        raise HTTPException(status_code=404, detail="Analysis not found.")
    return to_view(row)
