from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from .clients import get_client, translate_error
from .errors import DecodeError
from .models import ChatTurn
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "bedrock-2023-05-31"


def build_summary_messages(text: str) -> list[ChatTurn]:
	return [ChatTurn(role="user", text=f"Summarize the following text in a few sentences:\n\n{text}")]


def build_request_body(turns: Sequence[ChatTurn], max_tokens: int, temperature: float) -> dict[str, Any]:
	if not turns:
		raise ValueError("at least one message turn is required")
	return {
		"anthropic_version": ANTHROPIC_VERSION,
		"max_tokens": max_tokens,
		"temperature": temperature,
		"messages": [
			{"role": turn.role, "content": [{"type": "text", "text": turn.text}]}
			for turn in turns
		],
	}


def parse_completion_body(raw: bytes | str) -> str:
	"""Extract completion text from an invoke_model response body."""
	try:
		payload = json.loads(raw)
	except (TypeError, ValueError) as e:
		raise DecodeError(f"completion body is not JSON: {e}")
	if not isinstance(payload, dict) or not isinstance(payload.get("content"), list):
		raise DecodeError("completion body has no content list")
	parts = [
		block.get("text", "")
		for block in payload["content"]
		if isinstance(block, dict) and block.get("type") == "text"
	]
	if not parts:
		raise DecodeError("completion contains no text blocks")
	return "".join(parts)


def complete(
	turns: Sequence[ChatTurn],
	settings: Optional[Settings] = None,
	client: Any = None,
	model_id: Optional[str] = None,
	max_tokens: Optional[int] = None,
	temperature: Optional[float] = None,
) -> str:
	settings = settings or load_settings()
	client = client or get_client("bedrock-runtime", settings)
	model_id = model_id or settings.bedrock_model_id
	body = build_request_body(
		turns,
		max_tokens if max_tokens is not None else settings.bedrock_max_tokens,
		temperature if temperature is not None else settings.bedrock_temperature,
	)
	try:
		resp = client.invoke_model(
			modelId=model_id,
			contentType="application/json",
			accept="application/json",
			body=json.dumps(body),
		)
		raw = resp["body"].read()
	except (ClientError, BotoCoreError) as e:
		logger.error("bedrock invocation failed for %s: %s", model_id, e)
		raise translate_error(e) from e
	try:
		return parse_completion_body(raw)
	except DecodeError:
		logger.exception("unexpected bedrock response from %s", model_id)
		raise


def summarize(text: str, settings: Optional[Settings] = None, client: Any = None) -> str:
	text = (text or "").strip()
	if not text:
		raise ValueError("text must not be empty")
	return complete(build_summary_messages(text), settings=settings, client=client).strip()


def parse_json_completion(text: str) -> dict[str, Any]:
	"""Parse a completion that was asked to be a JSON object.

	Models sometimes wrap JSON in a markdown fence; that is stripped first.
	"""
	cleaned = text.strip()
	if cleaned.startswith("```"):
		cleaned = cleaned.strip("`")
		if cleaned.startswith("json"):
			cleaned = cleaned[len("json"):]
	try:
		payload = json.loads(cleaned)
	except ValueError as e:
		raise DecodeError(f"completion is not valid JSON: {e}")
	if not isinstance(payload, dict):
		raise DecodeError("completion JSON must be an object")
	return payload


def complete_json(
	turns: Sequence[ChatTurn],
	settings: Optional[Settings] = None,
	client: Any = None,
) -> dict[str, Any]:
	text = complete(turns, settings=settings, client=client)
	try:
		return parse_json_completion(text)
	except DecodeError:
		logger.error("structured completion could not be decoded: %.200s", text)
		raise
