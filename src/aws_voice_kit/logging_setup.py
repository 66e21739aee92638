from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

_HANDLER_NAME = "aws_voice_kit"


class JsonFormatter(logging.Formatter):
	"""Emit log records as single-line JSON objects."""

	def format(self, record: logging.LogRecord) -> str:
		payload: dict[str, Any] = {
			"timestamp": datetime.now(timezone.utc).isoformat(),
			"level": record.levelname,
			"module": record.name,
			"message": record.getMessage(),
			"metadata": getattr(record, "metadata", {}),
		}
		if record.exc_info:
			payload["error"] = self.formatException(record.exc_info)
		return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
	logger = logging.getLogger("aws_voice_kit")
	logger.setLevel(level.upper())
	# Re-configuring replaces our handler instead of stacking another one
	for handler in list(logger.handlers):
		if handler.get_name() == _HANDLER_NAME:
			logger.removeHandler(handler)

	handler = logging.StreamHandler()
	handler.set_name(_HANDLER_NAME)
	if json_output:
		handler.setFormatter(JsonFormatter())
	else:
		handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
	logger.addHandler(handler)
	return logger
