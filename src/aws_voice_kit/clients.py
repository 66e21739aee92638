from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, ParamValidationError

from .errors import RemoteServiceError, TransportError, VoiceKitError
from .settings import Settings, load_settings


@lru_cache(maxsize=16)
def _cached_client(service: str, region: str, max_attempts: int) -> Any:
	config = Config(region_name=region, retries={"mode": "standard", "max_attempts": max_attempts})
	return boto3.client(service, config=config)


def get_client(service: str, settings: Optional[Settings] = None) -> Any:
	"""Return a boto3 client for *service*, shared per region."""
	settings = settings or load_settings()
	return _cached_client(service, settings.aws_region, settings.aws_max_attempts)


def translate_error(exc: BaseException) -> VoiceKitError:
	"""Map a botocore failure onto the toolkit's error taxonomy."""
	if isinstance(exc, ClientError):
		code = exc.response.get("Error", {}).get("Code", "Unknown")
		return RemoteServiceError(f"{code}: {exc}")
	if isinstance(exc, ParamValidationError):
		# Malformed request, rejected before it leaves the process
		return RemoteServiceError(str(exc))
	return TransportError(str(exc))
