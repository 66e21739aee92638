from __future__ import annotations

# Real-time transcription over a bidirectional stream.
# Audio goes out on a sender task while the caller iterates finalized results,
# so neither direction waits on the other.

import asyncio
import logging
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, Optional, Protocol

from .errors import RemoteServiceError, StreamError, TransportError
from .models import Alternative, StreamSession, TranscriptEvent

logger = logging.getLogger(__name__)


class TranscriptConnection(Protocol):
	async def send(self, chunk: bytes) -> None: ...

	async def end(self) -> None: ...

	def events(self) -> AsyncIterator[TranscriptEvent]: ...

	async def close(self) -> None: ...


class TranscriptTransport(Protocol):
	async def connect(self, session: StreamSession) -> TranscriptConnection: ...


def final_text(event: TranscriptEvent) -> Optional[str]:
	"""Return the top alternative's text for a final event, else None."""
	if event.is_partial or not event.alternatives:
		return None
	return event.alternatives[0].text


def iter_final_texts(events: Iterable[TranscriptEvent]) -> Iterator[str]:
	for event in events:
		text = final_text(event)
		if text is not None:
			yield text


async def _pump_audio(
	chunks: AsyncIterable[bytes],
	connection: TranscriptConnection,
	failures: list[BaseException],
) -> None:
	try:
		async for chunk in chunks:
			await connection.send(chunk)
		await connection.end()
	except asyncio.CancelledError:
		raise
	except Exception as e:
		# Recorded before closing: the reader may finish while cleanup is still pending
		failures.append(e)
		await connection.close()
		raise
	finally:
		aclose = getattr(chunks, "aclose", None)
		if aclose is not None:
			await aclose()


async def stream_final_transcripts(
	chunks: AsyncIterable[bytes],
	session: StreamSession,
	transport: TranscriptTransport,
) -> AsyncIterator[str]:
	"""Stream *chunks* to the transcription service and yield finalized text.

	Partial results are dropped. Any transport or audio source failure ends
	the iteration with StreamError. Closing the iterator (or cancelling the
	task driving it) stops the sender and releases the connection.
	"""
	try:
		connection = await transport.connect(session)
	except Exception as e:
		logger.error("could not open transcription stream: %s", e)
		raise StreamError(f"could not open transcription stream: {e}") from e

	logger.debug(
		"transcription stream opened",
		extra={"metadata": {"language_code": session.language_code, "sample_rate_hz": session.sample_rate_hz}},
	)
	failures: list[BaseException] = []
	sender = asyncio.create_task(_pump_audio(chunks, connection, failures))
	try:
		try:
			async for event in connection.events():
				text = final_text(event)
				if text is not None:
					yield text
		except StreamError:
			raise
		except Exception as e:
			logger.error("transcription stream failed: %s", e)
			raise StreamError(str(e)) from e

		# Remote side closed. A sender failure is what closed it, if any.
		if failures:
			cause = failures[0]
			logger.error("audio transmission failed: %s", cause)
			raise StreamError(f"audio transmission failed: {cause}") from cause
	finally:
		if not sender.done():
			sender.cancel()
		await asyncio.gather(sender, return_exceptions=True)
		await connection.close()
		logger.debug("transcription stream closed")


def translate_stream_error(exc: Exception) -> Exception:
	"""Map an amazon-transcribe failure onto RemoteServiceError or TransportError."""
	from amazon_transcribe.exceptions import (
		BadRequestException,
		ConflictException,
		InternalFailureException,
		LimitExceededException,
		SerializationException,
		ServiceUnavailableException,
	)

	service_errors = (
		BadRequestException,
		ConflictException,
		InternalFailureException,
		LimitExceededException,
		SerializationException,
		ServiceUnavailableException,
	)
	if isinstance(exc, service_errors):
		return RemoteServiceError(str(exc))
	return TransportError(str(exc))


class AmazonTranscribeConnection:
	def __init__(self, stream) -> None:  # type: ignore[no-untyped-def]
		self._stream = stream
		self._ended = False

	async def send(self, chunk: bytes) -> None:
		try:
			await self._stream.input_stream.send_audio_event(audio_chunk=chunk)
		except Exception as e:
			raise translate_stream_error(e) from e

	async def end(self) -> None:
		if self._ended:
			return
		self._ended = True
		try:
			await self._stream.input_stream.end_stream()
		except Exception as e:
			raise TransportError(str(e)) from e

	async def events(self) -> AsyncIterator[TranscriptEvent]:
		try:
			async for sdk_event in self._stream.output_stream:
				transcript = getattr(sdk_event, "transcript", None)
				if transcript is None:
					continue
				for result in transcript.results or ():
					yield convert_result(result)
		except Exception as e:
			raise translate_stream_error(e) from e

	async def close(self) -> None:
		# Ending the input half lets the service flush and close its half
		try:
			await self.end()
		except TransportError as e:
			logger.debug("ignoring error while closing stream: %s", e)


def convert_result(result) -> TranscriptEvent:  # type: ignore[no-untyped-def]
	"""Convert an amazon-transcribe Result into a TranscriptEvent."""
	alternatives = []
	for alt in result.alternatives or ():
		confidences = [item.confidence for item in (alt.items or ()) if getattr(item, "confidence", None) is not None]
		confidence = sum(confidences) / len(confidences) if confidences else None
		alternatives.append(Alternative(text=alt.transcript or "", confidence=confidence))
	return TranscriptEvent(
		is_partial=bool(result.is_partial),
		alternatives=tuple(alternatives),
		result_id=result.result_id,
		start_time=result.start_time,
		end_time=result.end_time,
	)


class AmazonTranscribeTransport:
	def __init__(self, region: str) -> None:
		self.region = region

	async def connect(self, session: StreamSession) -> AmazonTranscribeConnection:
		from amazon_transcribe.client import TranscribeStreamingClient

		client = TranscribeStreamingClient(region=self.region)
		try:
			stream = await client.start_stream_transcription(
				language_code=session.language_code,
				media_sample_rate_hz=session.sample_rate_hz,
				media_encoding=session.media_encoding,
			)
		except Exception as e:
			raise translate_stream_error(e) from e
		return AmazonTranscribeConnection(stream)
