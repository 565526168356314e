import pytest

from app.backend.config import DEFAULT_BASE_URL, DEFAULT_MODEL, load_settings


ENV_NAMES = (
    "GPTSAPI_KEY",
    "GPTSAPI_BASE_URL",
    "GPTSAPI_MODEL",
    "COACHING_TIMEOUT_SECONDS",
    "ANALYSIS_TIMEOUT_SECONDS",
    "EVALUATION_TIMEOUT_SECONDS",
    "QUESTION_TIMEOUT_SECONDS",
    "DATABASE_URL",
    "FRONTEND_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.llm_api_key == ""
    assert settings.has_llm_credentials is False
    assert settings.llm_base_url == DEFAULT_BASE_URL
    assert settings.llm_model == DEFAULT_MODEL
    assert settings.coaching_timeout_seconds == 15.0
    assert settings.question_timeout_seconds == 7.0
    assert settings.frontend_origins == ("http://localhost:5173", "http://127.0.0.1:5173")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("GPTSAPI_KEY", "  secret  ")
    monkeypatch.setenv("GPTSAPI_MODEL", "claude-3-5-haiku-20241022")
    monkeypatch.setenv("QUESTION_TIMEOUT_SECONDS", "3.5")
    monkeypatch.setenv("FRONTEND_ORIGINS", "https://a.example, ,https://b.example")
    settings = load_settings()
    assert settings.llm_api_key == "secret"
    assert settings.has_llm_credentials is True
    assert settings.llm_model == "claude-3-5-haiku-20241022"
    assert settings.question_timeout_seconds == 3.5
    assert settings.frontend_origins == ("https://a.example", "https://b.example")


@pytest.mark.parametrize("raw", ["abc", "0", "-2"])
def test_invalid_timeout_is_rejected(monkeypatch, raw):
    monkeypatch.setenv("COACHING_TIMEOUT_SECONDS", raw)
    with pytest.raises(RuntimeError, match="COACHING_TIMEOUT_SECONDS"):
        load_settings()
