import asyncio
from pathlib import Path

import numpy as np
import pytest

from aws_voice_kit.audio_io import (
	chunk_size_bytes,
	enqueue_or_drop,
	iter_wav_chunks,
	pcm_to_wav_bytes,
	wav_bytes_to_pcm,
)
from aws_voice_kit.errors import AudioError


async def _read_all(path: Path, **kwargs) -> list[bytes]:  # type: ignore[no-untyped-def]
	return [chunk async for chunk in iter_wav_chunks(path, **kwargs)]


def _write_wav(tmp_path: Path, samples: int, sample_rate: int = 16000) -> Path:
	pcm = (np.arange(samples) % 100).astype(np.int16)
	path = tmp_path / "speech.wav"
	path.write_bytes(pcm_to_wav_bytes(pcm, sample_rate))
	return path


def test_chunk_size_bytes() -> None:
	assert chunk_size_bytes(16000, 100) == 3200
	assert chunk_size_bytes(8000, 20) == 320
	with pytest.raises(ValueError):
		chunk_size_bytes(16000, 0)


def test_wav_roundtrip_preserves_rate() -> None:
	pcm = np.array([0, 1, -1, 32767], dtype=np.int16)
	decoded, rate = wav_bytes_to_pcm(pcm_to_wav_bytes(pcm, 8000))
	assert rate == 8000
	assert decoded.tolist() == pcm.tolist()


def test_wav_file_is_chunked_in_order(tmp_path: Path) -> None:
	path = _write_wav(tmp_path, samples=4000)

	chunks = asyncio.run(_read_all(path, chunk_ms=100, sample_rate=16000))

	assert [len(c) for c in chunks] == [3200, 3200, 1600]
	pcm = np.frombuffer(b"".join(chunks), dtype=np.int16)
	assert pcm.tolist() == (np.arange(4000) % 100).tolist()


def test_sample_rate_mismatch_is_rejected(tmp_path: Path) -> None:
	path = _write_wav(tmp_path, samples=100, sample_rate=8000)
	with pytest.raises(AudioError):
		asyncio.run(_read_all(path, sample_rate=16000))


def test_missing_file_is_an_audio_error(tmp_path: Path) -> None:
	with pytest.raises(AudioError):
		asyncio.run(_read_all(tmp_path / "missing.wav"))


def test_full_queue_drops_new_chunks() -> None:
	queue: asyncio.Queue = asyncio.Queue(maxsize=2)
	assert enqueue_or_drop(queue, b"a")
	assert enqueue_or_drop(queue, b"b")
	assert not enqueue_or_drop(queue, b"c")
	assert [queue.get_nowait(), queue.get_nowait()] == [b"a", b"b"]
