"""
Severity and confidence mapping for analysis results.

Two severity scales are in play: the analysis service answers with a triage
label (mild / moderate / urgent / emergency) while analysis rows store a level
(low / moderate / high / critical). Everything here is a total function; unknown
input falls back to the neutral value of the target scale.
"""
from typing import Iterable

TRIAGE_LABELS = ("mild", "moderate", "urgent", "emergency")
SEVERITY_LEVELS = ("low", "moderate", "high", "critical")

DEFAULT_TRIAGE = "moderate"
DEFAULT_LEVEL = "moderate"

_TO_LEVEL = {
    "mild": "low",
    "low": "low",
    "moderate": "moderate",
    "urgent": "high",
    "high": "high",
    "emergency": "critical",
    "critical": "critical",
    "severe": "critical",
}

_TO_TRIAGE = {
    "mild": "mild",
    "low": "mild",
    "moderate": "moderate",
    "medium": "moderate",
    "urgent": "urgent",
    "high": "urgent",
    "emergency": "emergency",
    "critical": "emergency",
    "severe": "emergency",
}

SEVERITY_COLORS = {
    "mild": "green",
    "moderate": "yellow",
    "urgent": "orange",
    "emergency": "red",
}
UNKNOWN_SEVERITY_COLOR = "gray"

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.6

# Recommendation text containing one of these means the service referred the patient to a doctor
REFERRAL_PHRASES = ("see a doctor", "medical attention", "consult")

APPOINTMENT_STATUS_BADGES = {
    "confirmed": "default",
    "pending": "secondary",
    "cancelled": "destructive",
    "completed": "outline",
}

# Badges on the doctor's appointment queue
DOCTOR_APPOINTMENT_STATUS_BADGES = {
    "pending": "outline",
    "confirmed": "default",
    "completed": "secondary",
    "cancelled": "destructive",
    "rescheduled": "outline",
}


def _clean(value: str | None) -> str:
    return (value or "").strip().lower()


def map_severity_level(severity: str | None) -> str:
    """Service severity (either scale) -> stored level. Unknown -> moderate."""
    return _TO_LEVEL.get(_clean(severity), DEFAULT_LEVEL)


def normalize_triage(severity: str | None) -> str:
    """Any severity string -> triage label. Unknown -> moderate."""
    return _TO_TRIAGE.get(_clean(severity), DEFAULT_TRIAGE)


def triage_from_level(level: str | None) -> str:
    """Stored level -> triage label, for re-presenting saved analyses."""
    return normalize_triage(level)


def severity_color(severity: str | None) -> str:
    """Colour token for the severity badge. Only exact triage labels get a colour."""
    return SEVERITY_COLORS.get(_clean(severity), UNKNOWN_SEVERITY_COLOR)


def confidence_label(confidence: float | None) -> str:
    score = confidence or 0.0
    if score >= HIGH_CONFIDENCE:
        return "High Confidence"
    if score >= MEDIUM_CONFIDENCE:
        return "Medium Confidence"
    return "Low Confidence"


def confidence_color(confidence: float | None) -> str:
    score = confidence or 0.0
    if score >= HIGH_CONFIDENCE:
        return "green"
    if score >= MEDIUM_CONFIDENCE:
        return "yellow"
    return "orange"


def recommendations_text(recommendations: Iterable[str] | str | None) -> str:
    if not recommendations:
        return ""
    if isinstance(recommendations, str):
        return recommendations.lower()
    return " ".join(str(r) for r in recommendations).lower()


def should_offer_booking(
    severity: str | None,
    recommendations: Iterable[str] | str | None = None,
    urgency: bool = False,
) -> bool:
    """
    Whether the result card offers "Book Appointment with Doctor".

    True when the urgency flag is set, the severity is urgent or emergency, or
    the recommendations refer the patient to a doctor.
    """
    if urgency:
        return True
    if normalize_triage(severity) in ("urgent", "emergency"):
        return True
    text = recommendations_text(recommendations)
    return any(phrase in text for phrase in REFERRAL_PHRASES)


def should_offer_nearby_help(severity: str | None) -> bool:
    return normalize_triage(severity) in ("moderate", "urgent", "emergency")


def urgent_warning(severity: str | None, analysis_type: str = "text") -> dict | None:
    """Warning banner for urgent and emergency results; None for anything milder."""
    triage = normalize_triage(severity)
    if triage == "emergency":
        return {
            "level": "emergency",
            "title": "EMERGENCY - Seek Immediate Care",
            "message": (
                "Call 911 or go to the nearest emergency room immediately. "
                "Do not delay - this could be life-threatening."
            ),
        }
    if triage == "urgent":
        if analysis_type == "image":
            message = "Consult a dermatologist within 24-48 hours. This condition requires professional evaluation."
        else:
            message = "Contact your healthcare provider within 24 hours or visit urgent care if doctor is unavailable."
        return {"level": "urgent", "title": "Urgent Medical Attention Required", "message": message}
    return None


def nearby_search_heading(severity: str | None) -> str:
    triage = _clean(severity)
    if triage == "emergency":
        return "Emergency Hospitals Nearby"
    if triage == "urgent":
        return "Urgent Care Facilities"
    return "Medical Clinics & Doctors"


def appointment_status_badge(status: str | None) -> str:
    return APPOINTMENT_STATUS_BADGES.get(_clean(status), "secondary")


def doctor_appointment_status_badge(status: str | None) -> str:
    return DOCTOR_APPOINTMENT_STATUS_BADGES.get(_clean(status), "default")


def booking_reason(symptoms: Iterable[str] | str | None, severity: str | None) -> str:
    """Prefilled reason for an appointment booked from an analysis result."""
    if isinstance(symptoms, str):
        symptom_text = symptoms
    else:
        symptom_text = ", ".join(str(s) for s in (symptoms or []))
    return f"Symptoms: {symptom_text}\nSeverity: {severity or ''}"
