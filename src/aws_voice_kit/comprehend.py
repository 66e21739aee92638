from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .clients import get_client, translate_error
from .errors import DecodeError, VoiceKitError
from .models import SENTIMENT_LABELS, SentimentResult
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)

MAX_TEXT_BYTES = 5000


def truncate_utf8(text: str, max_bytes: int = MAX_TEXT_BYTES) -> str:
	"""Trim *text* to at most *max_bytes* UTF-8 bytes without splitting a character."""
	encoded = text.encode("utf-8")
	if len(encoded) <= max_bytes:
		return text
	return encoded[:max_bytes].decode("utf-8", errors="ignore")


def parse_sentiment_response(resp: Mapping[str, Any]) -> SentimentResult:
	label = resp.get("Sentiment")
	if label not in SENTIMENT_LABELS:
		raise DecodeError(f"unexpected sentiment label: {label!r}")
	raw_scores = resp.get("SentimentScore") or {}
	scores = {key.upper(): float(value) for key, value in raw_scores.items()}
	return SentimentResult(label=label, scores=scores)


def detect_sentiment(
	text: str,
	language_code: str = "en",
	settings: Optional[Settings] = None,
	client: Any = None,
) -> SentimentResult:
	client = client or get_client("comprehend", settings or load_settings())
	try:
		resp = client.detect_sentiment(Text=truncate_utf8(text), LanguageCode=language_code)
	except (ClientError, BotoCoreError) as e:
		logger.error("comprehend detect_sentiment failed: %s", e)
		raise translate_error(e) from e
	return parse_sentiment_response(resp)


def is_alertable(result: SentimentResult, threshold: float = 0.9) -> bool:
	return result.label == "NEGATIVE" and result.score("NEGATIVE") > threshold


def check_sentiment_alert(
	text: str,
	language_code: str = "en",
	settings: Optional[Settings] = None,
	client: Any = None,
) -> bool:
	"""Return True when *text* is strongly negative.

	Failures are logged and reported as "no alert" so a flaky classifier
	never blocks the caller.
	"""
	settings = settings or load_settings()
	try:
		result = detect_sentiment(text, language_code, settings=settings, client=client)
	except VoiceKitError as e:
		logger.warning("sentiment check skipped: %s", e)
		return False
	alert = is_alertable(result, settings.sentiment_alert_threshold)
	if alert:
		logger.info(
			"negative sentiment alert",
			extra={"metadata": {"negative": result.score("NEGATIVE")}},
		)
	return alert
