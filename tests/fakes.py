from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable, Iterable, Optional, Union

from aws_voice_kit.models import Alternative, StreamSession, TranscriptEvent

_CLOSED = object()

Reply = Union[TranscriptEvent, BaseException]


def partial(text: str) -> TranscriptEvent:
	return TranscriptEvent(is_partial=True, alternatives=(Alternative(text),))


def final(text: str, *more: str) -> TranscriptEvent:
	return TranscriptEvent(is_partial=False, alternatives=tuple(Alternative(t) for t in (text,) + more))


class FakeConnection:
	"""In-memory stream; replies are queued by the on_chunk/on_end hooks."""

	def __init__(
		self,
		on_chunk: Optional[Callable[[int, bytes], Iterable[Reply]]] = None,
		on_end: Optional[Callable[[], Iterable[Reply]]] = None,
		remote_close_after: Optional[int] = None,
		send_error: Optional[Exception] = None,
	) -> None:
		self.sent: list[bytes] = []
		self.ended = False
		self.closed = False
		self._on_chunk = on_chunk
		self._on_end = on_end
		self._remote_close_after = remote_close_after
		self._send_error = send_error
		self._queue: asyncio.Queue = asyncio.Queue()

	async def send(self, chunk: bytes) -> None:
		if self.closed:
			raise RuntimeError("send on closed connection")
		if self._send_error is not None:
			raise self._send_error
		self.sent.append(chunk)
		if self._on_chunk is not None:
			for reply in self._on_chunk(len(self.sent), chunk):
				self._queue.put_nowait(reply)
		if len(self.sent) == self._remote_close_after:
			# Service hangs up while audio is still flowing
			self._queue.put_nowait(_CLOSED)

	async def end(self) -> None:
		self.ended = True
		if self._on_end is not None:
			for reply in self._on_end():
				self._queue.put_nowait(reply)
		self._queue.put_nowait(_CLOSED)

	async def events(self) -> AsyncIterator[TranscriptEvent]:
		while True:
			item = await self._queue.get()
			if item is _CLOSED:
				return
			if isinstance(item, BaseException):
				raise item
			yield item

	async def close(self) -> None:
		if not self.closed:
			self.closed = True
			self._queue.put_nowait(_CLOSED)


class FakeTransport:
	def __init__(self, connection_factory: Callable[[], FakeConnection], connect_error: Optional[Exception] = None) -> None:
		self._factory = connection_factory
		self._connect_error = connect_error
		self.connections: list[FakeConnection] = []
		self.sessions: list[StreamSession] = []

	async def connect(self, session: StreamSession) -> FakeConnection:
		if self._connect_error is not None:
			raise self._connect_error
		self.sessions.append(session)
		connection = self._factory()
		self.connections.append(connection)
		return connection


async def audio(*chunks: bytes) -> AsyncIterator[bytes]:
	for chunk in chunks:
		yield chunk
