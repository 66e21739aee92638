from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from botocore.exceptions import BotoCoreError, ClientError
from tenacity import RetryError, retry, retry_if_result, stop_after_delay, wait_fixed

from .clients import get_client, translate_error
from .errors import RemoteServiceError, TransportError
from .models import TextBlock
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)


def parse_blocks(resp: Mapping[str, Any]) -> list[TextBlock]:
	return [
		TextBlock(block_type=block.get("BlockType", ""), text=block.get("Text", ""), page=block.get("Page"))
		for block in resp.get("Blocks", ())
	]


def join_lines(blocks: Iterable[TextBlock]) -> str:
	"""Concatenate LINE blocks in response order, one per line."""
	return "\n".join(block.text for block in blocks if block.block_type == "LINE")


def _s3_document(bucket: str, key: str) -> dict[str, Any]:
	return {"S3Object": {"Bucket": bucket, "Name": key}}


def extract_document_text(
	bucket: str,
	key: str,
	settings: Optional[Settings] = None,
	client: Any = None,
) -> str:
	client = client or get_client("textract", settings or load_settings())
	try:
		resp = client.detect_document_text(Document=_s3_document(bucket, key))
	except (ClientError, BotoCoreError) as e:
		logger.error("textract failed for s3://%s/%s: %s", bucket, key, e)
		raise translate_error(e) from e
	return join_lines(parse_blocks(resp))


def _job_in_progress(resp: Mapping[str, Any]) -> bool:
	return resp.get("JobStatus") == "IN_PROGRESS"


def extract_multipage_text(
	bucket: str,
	key: str,
	settings: Optional[Settings] = None,
	client: Any = None,
) -> str:
	"""OCR a multi-page document (PDF/TIFF) through an asynchronous Textract job."""
	settings = settings or load_settings()
	client = client or get_client("textract", settings)

	@retry(
		retry=retry_if_result(_job_in_progress),
		wait=wait_fixed(settings.textract_poll_interval_s),
		stop=stop_after_delay(settings.textract_max_wait_s),
	)
	def _poll(job_id: str, next_token: Optional[str] = None) -> Mapping[str, Any]:
		params: dict[str, Any] = {"JobId": job_id}
		if next_token:
			params["NextToken"] = next_token
		return client.get_document_text_detection(**params)

	try:
		job_id = client.start_document_text_detection(DocumentLocation=_s3_document(bucket, key))["JobId"]
		logger.info("textract job %s started for s3://%s/%s", job_id, bucket, key)
		resp = _poll(job_id)
		status = resp.get("JobStatus")
		if status == "FAILED":
			raise RemoteServiceError(f"textract job {job_id} failed: {resp.get('StatusMessage', 'unknown')}")

		blocks = parse_blocks(resp)
		next_token = resp.get("NextToken")
		while next_token:
			resp = _poll(job_id, next_token)
			blocks.extend(parse_blocks(resp))
			next_token = resp.get("NextToken")
	except RetryError as e:
		logger.error("textract job for s3://%s/%s did not finish in %.0fs", bucket, key, settings.textract_max_wait_s)
		raise TransportError(f"textract job timed out after {settings.textract_max_wait_s}s") from e
	except (ClientError, BotoCoreError) as e:
		logger.error("textract failed for s3://%s/%s: %s", bucket, key, e)
		raise translate_error(e) from e
	except RemoteServiceError as e:
		logger.error("%s", e)
		raise

	if status == "PARTIAL_SUCCESS":
		logger.warning("textract job %s only partially succeeded", job_id)
	return join_lines(blocks)
