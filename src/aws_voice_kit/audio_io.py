from __future__ import annotations

import asyncio
import io
import logging
import wave
from pathlib import Path
from typing import AsyncIterator, Tuple, Union

import numpy as np

from .errors import AudioError

logger = logging.getLogger(__name__)

SAMPLE_WIDTH_BYTES = 2  # int16
# About five seconds of 100 ms chunks
MAX_QUEUED_CHUNKS = 50


def chunk_size_bytes(sample_rate: int, chunk_ms: int) -> int:
	"""Bytes of mono int16 PCM covering *chunk_ms* milliseconds."""
	if sample_rate <= 0 or chunk_ms <= 0:
		raise ValueError("sample_rate and chunk_ms must be positive")
	return max(1, sample_rate * chunk_ms // 1000) * SAMPLE_WIDTH_BYTES


def pcm_to_wav_bytes(pcm: np.ndarray, sample_rate: int) -> bytes:
	with io.BytesIO() as buffer:
		with wave.open(buffer, "wb") as wf:
			wf.setnchannels(1)
			wf.setsampwidth(SAMPLE_WIDTH_BYTES)
			wf.setframerate(sample_rate)
			wf.writeframes(pcm.astype(np.int16).tobytes())
		return buffer.getvalue()


def wav_bytes_to_pcm(wav_bytes: bytes) -> Tuple[np.ndarray, int]:
	with io.BytesIO(wav_bytes) as buffer:
		with wave.open(buffer, "rb") as wf:
			sample_rate = wf.getframerate()
			frames = wf.readframes(wf.getnframes())
	pcm = np.frombuffer(frames, dtype=np.int16)
	return pcm, sample_rate


async def iter_wav_chunks(
	path: Union[str, Path],
	chunk_ms: int = 100,
	sample_rate: int | None = None,
) -> AsyncIterator[bytes]:
	"""Yield raw PCM chunks from a mono 16-bit WAV file.

	If *sample_rate* is given the file must match it; transcription sessions
	are opened with a fixed rate.
	"""
	try:
		wf = wave.open(str(path), "rb")
	except (OSError, wave.Error) as e:
		raise AudioError(f"cannot open {path}: {e}")
	with wf:
		if wf.getnchannels() != 1 or wf.getsampwidth() != SAMPLE_WIDTH_BYTES:
			raise AudioError(f"{path}: expected mono 16-bit PCM")
		if sample_rate is not None and wf.getframerate() != sample_rate:
			raise AudioError(f"{path}: sample rate {wf.getframerate()} Hz, expected {sample_rate} Hz")
		frames_per_chunk = chunk_size_bytes(wf.getframerate(), chunk_ms) // SAMPLE_WIDTH_BYTES
		while True:
			data = wf.readframes(frames_per_chunk)
			if not data:
				break
			yield data
			# Let the event loop run the receiving side between chunks
			await asyncio.sleep(0)


def enqueue_or_drop(queue: asyncio.Queue, chunk: bytes) -> bool:
	"""Queue a captured chunk, dropping it when the consumer has fallen behind."""
	try:
		queue.put_nowait(chunk)
	except asyncio.QueueFull:
		logger.warning("transcription is falling behind; dropped %d bytes of audio", len(chunk))
		return False
	return True


async def microphone_chunks(sample_rate: int, chunk_ms: int = 100) -> AsyncIterator[bytes]:
	"""Yield live microphone PCM chunks until the consumer stops iterating."""
	import sounddevice as sd

	loop = asyncio.get_running_loop()
	queue: asyncio.Queue[bytes] = asyncio.Queue(maxsize=MAX_QUEUED_CHUNKS)
	blocksize = chunk_size_bytes(sample_rate, chunk_ms) // SAMPLE_WIDTH_BYTES

	def _callback(indata, frames_count, time, status):  # type: ignore[no-untyped-def]
		# Copy out of sounddevice's buffer; runs on the audio thread
		if status:
			logger.warning("microphone status: %s", status)
		loop.call_soon_threadsafe(enqueue_or_drop, queue, bytes(indata))

	try:
		stream = sd.RawInputStream(
			samplerate=sample_rate,
			channels=1,
			dtype="int16",
			blocksize=blocksize,
			callback=_callback,
		)
	except Exception as e:
		raise AudioError(str(e))

	with stream:
		while True:
			yield await queue.get()
