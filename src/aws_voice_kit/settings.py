from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MEDIA_ENCODINGS = frozenset({"pcm", "ogg-opus", "flac"})


class Settings(BaseSettings):
	model_config = SettingsConfigDict(env_file=None, env_prefix="", extra="ignore")

	aws_region: str = "us-east-1"
	aws_max_attempts: int = 3
	bedrock_model_id: str = "anthropic.claude-3-haiku-20240307-v1:0"
	bedrock_max_tokens: int = 512
	bedrock_temperature: float = 0.2
	language_code: str = "en-US"
	media_encoding: str = "pcm"
	sample_rate: int = 16000
	chunk_ms: int = 100
	sentiment_alert_threshold: float = 0.9
	textract_poll_interval_s: float = 2.0
	textract_max_wait_s: float = 300.0
	log_level: str = "INFO"
	log_json: bool = False

	@field_validator("media_encoding")
	@classmethod
	def _known_encoding(cls, value: str) -> str:
		if value not in MEDIA_ENCODINGS:
			raise ValueError(f"media_encoding must be one of {sorted(MEDIA_ENCODINGS)}")
		return value

	@field_validator("sample_rate", "chunk_ms", "bedrock_max_tokens", "aws_max_attempts")
	@classmethod
	def _positive(cls, value: int) -> int:
		if value <= 0:
			raise ValueError("must be positive")
		return value

	@field_validator("log_level")
	@classmethod
	def _known_log_level(cls, value: str) -> str:
		if not isinstance(logging.getLevelName(value.upper()), int):
			raise ValueError(f"unknown log level: {value}")
		return value.upper()

	@field_validator("bedrock_temperature")
	@classmethod
	def _temperature_range(cls, value: float) -> float:
		if not 0.0 <= value <= 1.0:
			raise ValueError("bedrock_temperature must be in [0, 1]")
		return value

	@field_validator("sentiment_alert_threshold")
	@classmethod
	def _threshold_range(cls, value: float) -> float:
		if not 0.0 <= value <= 1.0:
			raise ValueError("sentiment_alert_threshold must be in [0, 1]")
		return value


def load_settings() -> Settings:
	# Optional .env load handled by the entry points; here we just construct from env
	return Settings()
