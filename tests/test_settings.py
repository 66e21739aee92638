import pytest
from pydantic import ValidationError

from aws_voice_kit.models import StreamSession
from aws_voice_kit.settings import Settings, load_settings


def test_defaults(monkeypatch) -> None:  # type: ignore[no-untyped-def]
	for name in ("SAMPLE_RATE", "MEDIA_ENCODING", "SENTIMENT_ALERT_THRESHOLD", "LANGUAGE_CODE"):
		monkeypatch.delenv(name, raising=False)
	settings = load_settings()
	assert settings.sample_rate == 16000
	assert settings.media_encoding == "pcm"
	assert settings.sentiment_alert_threshold == 0.9


def test_environment_overrides(monkeypatch) -> None:  # type: ignore[no-untyped-def]
	monkeypatch.setenv("AWS_REGION", "eu-west-1")
	monkeypatch.setenv("SAMPLE_RATE", "8000")
	monkeypatch.setenv("LANGUAGE_CODE", "es-US")
	settings = load_settings()
	assert settings.aws_region == "eu-west-1"
	assert StreamSession.from_settings(settings) == StreamSession("es-US", "pcm", 8000)


@pytest.mark.parametrize(
	"overrides",
	[
		{"media_encoding": "mp3"},
		{"sample_rate": 0},
		{"sentiment_alert_threshold": 1.5},
		{"bedrock_temperature": -0.1},
	],
)
def test_invalid_values_raise(overrides: dict) -> None:
	with pytest.raises(ValidationError):
		Settings(**overrides)


def test_stream_session_validates() -> None:
	with pytest.raises(ValueError):
		StreamSession(sample_rate_hz=-1)
	with pytest.raises(ValueError):
		StreamSession(media_encoding="wav")


def test_log_level_is_normalised(monkeypatch) -> None:  # type: ignore[no-untyped-def]
	monkeypatch.setenv("LOG_LEVEL", "debug")
	assert load_settings().log_level == "DEBUG"


def test_unknown_log_level_is_rejected() -> None:
	with pytest.raises(ValidationError):
		Settings(log_level="LOUD")
