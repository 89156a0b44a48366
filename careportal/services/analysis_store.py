"""
Persistence and presentation of analysis results.

The raw analysis answer is loosely shaped (plain symptom strings or objects,
``name`` or ``symptom`` keys, missing confidences). ``format_symptoms`` and
``format_diseases`` turn it into the stored JSON lists; ``to_view`` turns a
stored row back into the result card the dashboards render.
"""
from sqlmodel import Session, select

from careportal.core.clock import as_utc, utc_now
from careportal.core.config import settings
from careportal.core.triage import (
    booking_reason,
    confidence_color,
    confidence_label,
    map_severity_level,
    severity_color,
    should_offer_booking,
    should_offer_nearby_help,
    triage_from_level,
    urgent_warning,
)
from careportal.models import (
    ANALYSIS_MODELS,
    ANALYSIS_TYPES,
    AnalysisBase,
    ImageAnalysis,
    Patient,
    TextAnalysis,
    User,
    VoiceAnalysis,
)
from careportal.schemas import AnalysisView, DiseaseView, SymptomView, WarningView
from careportal.services.storage import is_placeholder

DEFAULT_SYMPTOM_CONFIDENCE = 0.85
DEFAULT_DISEASE_CONFIDENCE = 0.5
UNKNOWN_PATIENT = "Unknown Patient"


def _confidence(value, default: float) -> float:
    """Upstream confidences may be missing, zero or not numbers at all."""
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    return confidence or default


def _symptom_name(item) -> str:
    if isinstance(item, dict):
        return str(item.get("symptom") or item.get("name") or "")
    return str(item)


def format_symptoms(symptoms: list | None, symptoms_with_confidence: list | None = None) -> list[dict]:
    if symptoms_with_confidence:
        return [
            {
                "symptom": _symptom_name(s),
                "confidence": _confidence(s.get("confidence") if isinstance(s, dict) else None, DEFAULT_SYMPTOM_CONFIDENCE),
                "source": (s.get("source") if isinstance(s, dict) else None) or "model",
            }
            for s in symptoms_with_confidence
        ]
    return [
        {"symptom": _symptom_name(s), "confidence": DEFAULT_SYMPTOM_CONFIDENCE, "source": "model"}
        for s in (symptoms or [])
    ]


def format_diseases(diseases: list | None) -> list[dict]:
    if not diseases:
        return []
    formatted = []
    for d in diseases:
        if isinstance(d, dict):
            formatted.append({
                "name": str(d.get("name") or ""),
                "confidence": _confidence(d.get("confidence") or d.get("score"), DEFAULT_DISEASE_CONFIDENCE),
                "description": str(d.get("description") or ""),
            })
        else:
            formatted.append({"name": str(d), "confidence": DEFAULT_DISEASE_CONFIDENCE, "description": ""})
    return formatted


def _lines(value) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        return value
    return "\n".join(str(v) for v in value)


def patient_identity(db: Session, user: User) -> tuple[str, str]:
    """(display name, email) copied onto each analysis row."""
    profile = db.exec(select(Patient).where(Patient.user_id == user.id)).first()
    name = profile.full_name if profile else ""
    return name or UNKNOWN_PATIENT, user.email or ""


def _common_fields(db: Session, user: User, response: dict, recommendations) -> dict:
    name, email = patient_identity(db, user)
    return {
        "patient_id": user.id,
        "patient_name": name,
        "patient_email": email,
        "possible_diseases": format_diseases(response.get("diseases")),
        "severity_level": map_severity_level(response.get("severity") or "moderate"),
        "ai_recommendations": _lines(recommendations),
        "confidence_score": _confidence(response.get("confidence"), 0.0) or None,
        "urgency": bool(response.get("urgency")),
        "analysis_model_version": settings.analysis_model_version,
    }


def _save(db: Session, row: AnalysisBase) -> AnalysisBase:
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def save_text_analysis(db: Session, user: User, input_text: str, response: dict) -> TextAnalysis:
    row = TextAnalysis(
        input_text=input_text,
        word_count=len(input_text.split()),
        detected_symptoms=format_symptoms(response.get("symptoms"), response.get("symptoms_with_confidence")),
        follow_up_questions=list(response.get("follow_up_questions") or []),
        related_body_parts=list(response.get("body_parts") or []),
        **_common_fields(db, user, response, response.get("recommendations")),
    )
    return _save(db, row)


def save_voice_analysis(
    db: Session,
    user: User,
    spoken_text: str,
    response: dict,
    audio_duration_seconds: float | None = None,
    language: str | None = None,
) -> VoiceAnalysis:
    row = VoiceAnalysis(
        spoken_text=spoken_text,
        audio_duration_seconds=audio_duration_seconds,
        language=language or "en",
        detected_symptoms=format_symptoms(response.get("symptoms"), response.get("symptoms_with_confidence")),
        **_common_fields(db, user, response, response.get("recommendations")),
    )
    return _save(db, row)


def save_image_analysis(db: Session, user: User, image_url: str, filename: str, response: dict) -> ImageAnalysis:
    diseases = format_diseases(response.get("diseases"))
    row = ImageAnalysis(
        image_url=image_url,
        image_type="skin",
        body_part=response.get("body_part") or "skin",
        image_description=f"Analyzed image: {filename}",
        detected_conditions=diseases,
        detected_symptoms=format_symptoms(response.get("symptoms"), response.get("symptoms_with_confidence")),
        **_common_fields(db, user, response, response.get("recommendations") or response.get("care_tips")),
    )
    return _save(db, row)


def analysis_type_of(row: AnalysisBase) -> str:
    for name, model in ANALYSIS_MODELS.items():
        if isinstance(row, model):
            return name
    raise ValueError(f"not an analysis row: {type(row).__name__}")


def _input_of(row: AnalysisBase) -> str:
    if isinstance(row, VoiceAnalysis):
        return row.spoken_text
    if isinstance(row, TextAnalysis):
        return row.input_text
    if isinstance(row, ImageAnalysis):
        return row.image_description or ""
    return ""


def image_file_url(row: ImageAnalysis) -> str:
    """API path of the stored image; placeholders from failed uploads are returned as they are."""
    if is_placeholder(row.image_url):
        return row.image_url
    return f"/analysis/image/{row.id}/file"


def to_view(row: AnalysisBase) -> AnalysisView:
    analysis_type = analysis_type_of(row)
    severity = triage_from_level(row.severity_level)
    recommendations = [line for line in (row.ai_recommendations or "").split("\n") if line.strip()]
    symptom_items = row.detected_symptoms or []
    if not symptom_items and isinstance(row, ImageAnalysis):
        # image results carry conditions instead of symptoms
        symptom_items = [{"symptom": c.get("name", ""), "confidence": c.get("confidence")} for c in row.detected_conditions or []]
    symptoms = []
    for s in symptom_items:
        confidence = _confidence(s.get("confidence"), 0.0)
        symptoms.append(SymptomView(
            name=s.get("symptom") or s.get("name") or "",
            confidence=confidence,
            source=s.get("source") or "model",
            confidence_label=confidence_label(confidence),
            confidence_color=confidence_color(confidence),
        ))
    warning = urgent_warning(severity, analysis_type)
    return AnalysisView(
        id=row.id or 0,
        type=analysis_type,
        input=_input_of(row),
        severity=severity,
        severity_level=row.severity_level,
        severity_color=severity_color(severity),
        symptoms=symptoms,
        diseases=[
            DiseaseView(name=d.get("name", ""), confidence=_confidence(d.get("confidence"), 0.0), description=d.get("description") or "")
            for d in row.possible_diseases or []
        ],
        recommendations=recommendations,
        urgency=row.urgency,
        show_booking=should_offer_booking(severity, recommendations, row.urgency),
        show_nearby_help=should_offer_nearby_help(severity),
        warning=WarningView(**warning) if warning else None,
        booking_reason=booking_reason([s.name for s in symptoms], severity),
        confidence_score=row.confidence_score,
        image_url=image_file_url(row) if isinstance(row, ImageAnalysis) else None,
        is_reviewed=row.is_reviewed,
        doctor_notes=row.doctor_notes,
        created_at=row.created_at,
    )


def get_analysis(db: Session, analysis_type: str, analysis_id: int) -> AnalysisBase | None:
    model = ANALYSIS_MODELS.get(analysis_type)
    if model is None:
        return None
    return db.get(model, analysis_id)


def analysis_history(db: Session, patient_id: int, limit: int = 20) -> dict[str, list[AnalysisBase]]:
    """Newest first, ``limit`` rows per modality."""
    history = {}
    for name in ANALYSIS_TYPES:
        model = ANALYSIS_MODELS[name]
        stmt = (
            select(model)
            .where(model.patient_id == patient_id)
            .order_by(model.created_at.desc(), model.id.desc())
            .limit(limit)
        )
        history[name] = list(db.exec(stmt).all())
    return history


def merged_history(db: Session, patient_id: int, limit: int = 50) -> list[AnalysisBase]:
    rows = [row for rows in analysis_history(db, patient_id, limit).values() for row in rows]
    rows.sort(key=lambda r: as_utc(r.created_at), reverse=True)
    return rows[:limit]


def mark_reviewed(db: Session, row: AnalysisBase, doctor_id: int, notes: str | None) -> AnalysisBase:
    row.is_reviewed = True
    row.reviewed_by_doctor = doctor_id
    row.doctor_notes = (notes or "").strip() or None
    row.reviewed_at = utc_now()
    row.updated_at = row.reviewed_at
    return _save(db, row)
