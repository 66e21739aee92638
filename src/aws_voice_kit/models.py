from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .settings import MEDIA_ENCODINGS, Settings

SENTIMENT_LABELS = ("POSITIVE", "NEGATIVE", "NEUTRAL", "MIXED")


@dataclass(frozen=True)
class Alternative:
	"""One ranked transcription guess for an audio segment."""

	text: str
	confidence: Optional[float] = None


@dataclass(frozen=True)
class TranscriptEvent:
	"""A transcription result; partial results are likely to be revised."""

	is_partial: bool
	alternatives: tuple[Alternative, ...] = ()
	result_id: Optional[str] = None
	start_time: Optional[float] = None
	end_time: Optional[float] = None


@dataclass(frozen=True)
class StreamSession:
	language_code: str = "en-US"
	media_encoding: str = "pcm"
	sample_rate_hz: int = 16000

	def __post_init__(self) -> None:
		if self.sample_rate_hz <= 0:
			raise ValueError("sample_rate_hz must be positive")
		if self.media_encoding not in MEDIA_ENCODINGS:
			raise ValueError(f"unsupported media encoding: {self.media_encoding}")
		if not self.language_code:
			raise ValueError("language_code must not be empty")

	@classmethod
	def from_settings(cls, settings: Settings) -> "StreamSession":
		return cls(
			language_code=settings.language_code,
			media_encoding=settings.media_encoding,
			sample_rate_hz=settings.sample_rate,
		)


@dataclass(frozen=True)
class SentimentResult:
	label: str
	scores: dict[str, float] = field(default_factory=dict)

	def score(self, label: str) -> float:
		return self.scores.get(label.upper(), 0.0)


@dataclass(frozen=True)
class TextBlock:
	block_type: str
	text: str
	page: Optional[int] = None


@dataclass(frozen=True)
class ChatTurn:
	role: str
	text: str

	def __post_init__(self) -> None:
		if self.role not in {"user", "assistant"}:
			raise ValueError(f"role must be 'user' or 'assistant', got {self.role!r}")
