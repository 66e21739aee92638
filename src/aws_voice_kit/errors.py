from __future__ import annotations


class VoiceKitError(Exception):
	pass


class TransportError(VoiceKitError):
	"""Connection or network failure talking to an AWS endpoint."""


class RemoteServiceError(VoiceKitError):
	"""The service rejected the request (non-2xx, validation, throttling)."""


class DecodeError(VoiceKitError):
	"""A response payload was not in the expected shape."""


class StreamError(VoiceKitError):
	"""A streaming transcription session terminated abnormally."""


class AudioError(VoiceKitError):
	pass
