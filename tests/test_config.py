import pytest

from courtroom.config import get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("JUDGE_TIMEOUT", "SUMMARY_TIMEOUT", "GEMINI_API_KEY", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = get_settings()
    assert settings.judge_timeout == 30.0
    assert settings.summary_timeout == 20.0
    assert settings.gemini_api_key is None


def test_timeouts_from_env(monkeypatch):
    monkeypatch.setenv("JUDGE_TIMEOUT", "12.5")
    monkeypatch.setenv("SUMMARY_TIMEOUT", "7")
    settings = get_settings()
    assert settings.judge_timeout == 12.5
    assert settings.summary_timeout == 7.0


def test_malformed_timeouts_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("JUDGE_TIMEOUT", "thirty")
    monkeypatch.setenv("SUMMARY_TIMEOUT", " ")
    settings = get_settings()
    assert settings.judge_timeout == 30.0
    assert settings.summary_timeout == 20.0


def test_cors_origins_list(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    assert get_settings().cors_origins == ["https://a.example", "https://b.example"]
