from __future__ import annotations

import argparse
import asyncio
import os
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .audio_io import iter_wav_chunks, microphone_chunks
from .bedrock import summarize
from .comprehend import detect_sentiment, is_alertable
from .errors import VoiceKitError
from .logging_setup import configure_logging
from .models import StreamSession
from .settings import Settings, load_settings
from .stt_stream import AmazonTranscribeTransport, TranscriptTransport, stream_final_transcripts
from .textract import extract_document_text, extract_multipage_text


async def _transcribe(settings: Settings, wav_path: Optional[str], transport: TranscriptTransport) -> None:
	# Both sources produce raw PCM whatever MEDIA_ENCODING says
	session = StreamSession(settings.language_code, "pcm", settings.sample_rate)
	if wav_path:
		chunks = iter_wav_chunks(wav_path, settings.chunk_ms, session.sample_rate_hz)
	else:
		chunks = microphone_chunks(session.sample_rate_hz, settings.chunk_ms)
	async for text in stream_final_transcripts(chunks, session, transport):
		print(text, flush=True)


def _cmd_transcribe(args: argparse.Namespace, settings: Settings) -> None:
	if args.file is None:
		print("Listening... press Ctrl+C to stop.")
	transport = AmazonTranscribeTransport(settings.aws_region)
	try:
		asyncio.run(_transcribe(settings, args.file, transport))
	except KeyboardInterrupt:
		pass


def _cmd_summarize(args: argparse.Namespace, settings: Settings) -> None:
	text = Path(args.file).read_text(encoding="utf-8")
	print(summarize(text, settings=settings))


def _cmd_sentiment(args: argparse.Namespace, settings: Settings) -> None:
	result = detect_sentiment(args.text, args.language, settings=settings)
	print(f"Sentiment: {result.label}")
	for label, score in sorted(result.scores.items()):
		print(f"  {label.lower()}: {score:.3f}")
	print(f"Alert: {'yes' if is_alertable(result, settings.sentiment_alert_threshold) else 'no'}")


def _cmd_ocr(args: argparse.Namespace, settings: Settings) -> None:
	extract = extract_multipage_text if args.multipage else extract_document_text
	print(extract(args.bucket, args.key, settings=settings))


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="aws-voice-kit", description="Transcribe, summarize, classify and OCR with AWS AI services")
	sub = parser.add_subparsers(dest="command", required=True)

	p = sub.add_parser("transcribe", help="Stream audio to Amazon Transcribe and print final results")
	p.add_argument("--file", type=str, default=None, help="Mono 16-bit WAV file (default: microphone)")
	p.set_defaults(func=_cmd_transcribe)

	p = sub.add_parser("summarize", help="Summarize a text file with Bedrock")
	p.add_argument("file", type=str)
	p.set_defaults(func=_cmd_summarize)

	p = sub.add_parser("sentiment", help="Classify sentiment with Comprehend")
	p.add_argument("text", type=str)
	p.add_argument("--language", type=str, default="en")
	p.set_defaults(func=_cmd_sentiment)

	p = sub.add_parser("ocr", help="Extract text from a document in S3 with Textract")
	p.add_argument("--bucket", required=True)
	p.add_argument("--key", required=True)
	p.add_argument("--multipage", action="store_true", help="Use an asynchronous job (PDF/TIFF)")
	p.set_defaults(func=_cmd_ocr)
	return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
	args = build_parser().parse_args(argv)

	# Optional .env
	if os.path.exists(".env"):
		load_dotenv()

	try:
		settings = load_settings()
		configure_logging(settings.log_level, settings.log_json)
		args.func(args, settings)
	except (VoiceKitError, OSError, ValueError) as e:
		print(f"Error: {e}")
		return 1
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
