"""Symptom analysis endpoints with the external service stubbed out."""
from pathlib import Path

from fastapi.testclient import TestClient
from sqlmodel import select

from careportal.core.config import settings
from careportal.models import ImageAnalysis, TextAnalysis, VoiceAnalysis

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_text_analysis_urgent(client: TestClient, patient: dict, stub_analysis, db):
    r = client.post("/analysis/text", json={"text": "  Sharp chest pain when climbing stairs  "}, headers=patient["headers"])
    assert r.status_code == 200, r.text
    j = r.json()
    assert stub_analysis.calls == [("text", "Sharp chest pain when climbing stairs")]
    assert j["type"] == "text"
    assert j["severity"] == "urgent"
    assert j["severity_level"] == "high"
    assert j["severity_color"] == "orange"
    assert j["show_booking"] is True
    assert j["show_nearby_help"] is True
    assert j["warning"]["level"] == "urgent"
    assert [s["name"] for s in j["symptoms"]] == ["chest pain", "shortness of breath"]
    assert all(s["confidence"] == 0.85 and s["confidence_label"] == "High Confidence" for s in j["symptoms"])
    assert j["diseases"][0] == {"name": "Angina", "confidence": 0.7, "description": "Reduced blood flow to the heart"}
    assert j["diseases"][1] == {"name": "Anxiety", "confidence": 0.5, "description": ""}
    assert j["recommendations"] == ["Avoid exertion", "Keep a symptom diary"]
    assert j["booking_reason"] == "Symptoms: chest pain, shortness of breath\nSeverity: urgent"

    row = db.get(TextAnalysis, j["id"])
    assert row.patient_id == patient["id"]
    assert row.patient_name == "Ada Lovelace"
    assert row.word_count == 6
    assert row.follow_up_questions == ["When did the pain start?"]
    assert row.related_body_parts == ["chest"]
    assert row.analysis_model_version == settings.analysis_model_version
    assert row.ai_recommendations == "Avoid exertion\nKeep a symptom diary"


def test_text_analysis_mild_offers_nothing(client: TestClient, patient: dict, stub_analysis):
    stub_analysis.results["text"] = {
        "symptoms_with_confidence": [
            {"symptom": "runny nose", "confidence": 0.9},
            {"name": "sneezing", "confidence": 0.65, "source": "keyword"},
            {"symptom": "fatigue", "confidence": 0.3},
        ],
        "severity": "mild",
        "recommendations": ["Rest"],
    }
    r = client.post("/analysis/text", json={"text": "sniffles"}, headers=patient["headers"])
    j = r.json()
    assert j["severity"] == "mild"
    assert j["severity_color"] == "green"
    assert j["show_booking"] is False
    assert j["show_nearby_help"] is False
    assert j["warning"] is None
    assert [(s["name"], s["source"], s["confidence_label"]) for s in j["symptoms"]] == [
        ("runny nose", "model", "High Confidence"),
        ("sneezing", "keyword", "Medium Confidence"),
        ("fatigue", "model", "Low Confidence"),
    ]


def test_referral_phrase_offers_booking(client: TestClient, patient: dict, stub_analysis):
    stub_analysis.results["text"] = {"symptoms": ["rash"], "severity": "mild", "recommendations": ["Consult a doctor"]}
    j = client.post("/analysis/text", json={"text": "itchy rash"}, headers=patient["headers"]).json()
    assert j["show_booking"] is True


def test_unknown_severity_defaults_to_moderate(client: TestClient, patient: dict, stub_analysis):
    stub_analysis.results["text"] = {"symptoms": ["ache"], "severity": "weird"}
    j = client.post("/analysis/text", json={"text": "ache"}, headers=patient["headers"]).json()
    assert j["severity_level"] == "moderate"
    assert j["severity"] == "moderate"


def test_non_numeric_confidences_fall_back_to_defaults(client: TestClient, patient: dict, stub_analysis, db):
    stub_analysis.results["text"] = {
        "symptoms_with_confidence": [{"symptom": "cough", "confidence": "high"}, {"symptom": "fever", "confidence": "0.7"}],
        "diseases": [{"name": "Bronchitis", "confidence": "likely"}, {"name": "Flu", "score": [0.4]}],
        "severity": "moderate",
        "confidence": "very",
    }
    r = client.post("/analysis/text", json={"text": "Dry cough and fever"}, headers=patient["headers"])
    assert r.status_code == 200, r.text
    j = r.json()
    assert [(s["name"], s["confidence"]) for s in j["symptoms"]] == [("cough", 0.85), ("fever", 0.7)]
    assert [(d["name"], d["confidence"]) for d in j["diseases"]] == [("Bronchitis", 0.5), ("Flu", 0.5)]
    assert j["confidence_score"] is None
    row = db.get(TextAnalysis, j["id"])
    assert row.detected_symptoms[0]["confidence"] == 0.85
    assert row.possible_diseases[0]["confidence"] == 0.5
    # the patient's history keeps loading
    assert client.get("/analysis/history", headers=patient["headers"]).status_code == 200
    assert client.get("/patient/profile", headers=patient["headers"]).status_code == 200


def test_text_analysis_empty_input(client: TestClient, patient: dict, stub_analysis):
    r = client.post("/analysis/text", json={"text": "   "}, headers=patient["headers"])
    assert r.status_code == 400
    assert stub_analysis.calls == []


def test_analysis_not_configured_stores_nothing(client: TestClient, patient: dict, db):
    r = client.post("/analysis/text", json={"text": "headache"}, headers=patient["headers"])
    assert r.status_code == 503
    assert r.json()["error"] == "Symptom analysis is not configured."
    assert db.exec(select(TextAnalysis).where(TextAnalysis.patient_id == patient["id"])).first() is None


def test_voice_analysis(client: TestClient, patient: dict, stub_analysis, db):
    r = client.post(
        "/analysis/voice",
        json={"spoken_text": "I have had a fever for two days", "audio_duration_seconds": 4.2},
        headers=patient["headers"],
    )
    assert r.status_code == 200
    j = r.json()
    assert j["type"] == "voice"
    assert stub_analysis.calls == [("voice", "I have had a fever for two days")]
    row = db.get(VoiceAnalysis, j["id"])
    assert row.language == "en"
    assert row.audio_duration_seconds == 4.2


def test_image_analysis_stores_file(client: TestClient, patient: dict, stub_analysis, db):
    r = client.post(
        "/analysis/image",
        files={"file": ("arm rash.png", PNG_BYTES, "image/png")},
        headers=patient["headers"],
    )
    assert r.status_code == 200, r.text
    j = r.json()
    assert j["type"] == "image"
    assert j["image_url"] == f"/analysis/image/{j['id']}/file"
    row = db.get(ImageAnalysis, j["id"])
    assert row.image_url.startswith(f"analysis-images/{patient['id']}/")
    assert row.image_url.endswith("_arm_rash.png")
    assert (Path(settings.uploads_dir) / row.image_url).read_bytes() == PNG_BYTES
    assert row.image_type == "skin"
    assert row.body_part == "skin"
    assert row.image_description == "Analyzed image: arm rash.png"
    assert row.detected_conditions == row.possible_diseases
    assert row.possible_diseases[0]["confidence"] == 0.8
    image = client.get(j["image_url"], headers=patient["headers"])
    assert image.status_code == 200
    assert image.content == PNG_BYTES
    assert image.headers["content-type"] == "image/png"


def test_image_file_is_private(client: TestClient, patient: dict, make_user, book, stub_analysis, db):
    r = client.post("/analysis/image", files={"file": ("mole.png", PNG_BYTES, "image/png")}, headers=patient["headers"])
    j = r.json()
    stored = db.get(ImageAnalysis, j["id"]).image_url
    # nothing is served from the uploads directory directly
    assert client.get(f"/media/{stored}").status_code == 404

    assert client.get(j["image_url"]).status_code == 401
    other_patient = make_user("patient")
    assert client.get(j["image_url"], headers=other_patient["headers"]).status_code == 404
    stranger = make_user("doctor", specialty="Dermatology")
    assert client.get(j["image_url"], headers=stranger["headers"]).status_code == 403

    treating = make_user("doctor", specialty="Dermatology")
    book(patient, treating)
    r = client.get(j["image_url"], headers=treating["headers"])
    assert r.status_code == 200
    assert r.content == PNG_BYTES
    assert client.get("/analysis/image/999999/file", headers=patient["headers"]).status_code == 404


def test_image_storage_failure_uses_placeholder(client: TestClient, patient: dict, stub_analysis, monkeypatch, tmp_path, db):
    blocked = tmp_path / "not-a-directory"
    blocked.write_text("x")
    monkeypatch.setattr(settings, "uploads_dir", str(blocked))
    r = client.post("/analysis/image", files={"file": ("mole.jpg", PNG_BYTES, "image/jpeg")}, headers=patient["headers"])
    assert r.status_code == 200
    j = r.json()
    assert j["image_url"] == "local:mole.jpg"
    assert db.get(ImageAnalysis, j["id"]).image_url == "local:mole.jpg"


def test_image_upload_validation(client: TestClient, patient: dict, stub_analysis):
    r = client.post("/analysis/image", files={"file": ("notes.pdf", b"%PDF", "application/pdf")}, headers=patient["headers"])
    assert r.status_code == 400
    r = client.post("/analysis/image", files={"file": ("empty.png", b"", "image/png")}, headers=patient["headers"])
    assert r.status_code == 400
    r = client.post("/analysis/image", headers=patient["headers"])
    assert r.status_code == 422
    assert stub_analysis.calls == []


def test_history_and_detail(client: TestClient, patient: dict, make_user, stub_analysis):
    for text in ("first", "second"):
        client.post("/analysis/text", json={"text": text}, headers=patient["headers"])
    client.post("/analysis/voice", json={"spoken_text": "third"}, headers=patient["headers"])

    r = client.get("/analysis/history", headers=patient["headers"])
    assert r.status_code == 200
    j = r.json()
    assert [a["input"] for a in j["text"]] == ["second", "first"]
    assert [a["input"] for a in j["voice"]] == ["third"]
    assert j["image"] == []

    limited = client.get("/analysis/history?limit=1", headers=patient["headers"]).json()
    assert len(limited["text"]) == 1

    analysis_id = j["text"][0]["id"]
    assert client.get(f"/analysis/text/{analysis_id}", headers=patient["headers"]).json()["input"] == "second"
    other = make_user("patient")
    assert client.get(f"/analysis/text/{analysis_id}", headers=other["headers"]).status_code == 404
    assert client.get(f"/analysis/unknown/{analysis_id}", headers=patient["headers"]).status_code == 404


def test_doctor_cannot_submit_analysis(client: TestClient, doctor: dict, stub_analysis):
    r = client.post("/analysis/text", json={"text": "cough"}, headers=doctor["headers"])
    assert r.status_code == 403
