"""Settings helpers and database URL normalisation."""
import pytest

from careportal.core.config import get_openai_keys, is_analysis_configured, settings
from careportal.core.database import _normalized_database_url


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("postgres://u:p@db/care", "postgresql+psycopg://u:p@db/care"),
        ("postgresql://u:p@db/care", "postgresql+psycopg://u:p@db/care"),
        ("postgresql+psycopg://u:p@db/care", "postgresql+psycopg://u:p@db/care"),
        ("sqlite:///./local.db", "sqlite:///./local.db"),
        ("", "sqlite:///./careportal.db"),
    ],
)
def test_database_url_normalisation(raw, expected):
    assert _normalized_database_url(raw) == expected


def test_openai_keys(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_keys", " sk-a , bogus, sk-b ")
    monkeypatch.setattr(settings, "openai_api_key", "sk-single")
    assert get_openai_keys() == ["sk-a", "sk-b"]
    monkeypatch.setattr(settings, "openai_api_keys", "")
    assert get_openai_keys() == ["sk-single"]
    monkeypatch.setattr(settings, "openai_api_key", "not-a-key")
    assert get_openai_keys() == []


def test_analysis_configured(monkeypatch):
    assert is_analysis_configured() is False
    monkeypatch.setattr(settings, "analysis_api_url", "http://analysis.local")
    assert is_analysis_configured() is True
