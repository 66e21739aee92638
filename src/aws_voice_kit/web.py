from __future__ import annotations

import logging
import os
from typing import AsyncIterator, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from . import bedrock, comprehend, textract
from .errors import StreamError, VoiceKitError
from .logging_setup import configure_logging
from .models import StreamSession
from .settings import Settings, load_settings
from .stt_stream import AmazonTranscribeTransport, TranscriptTransport, stream_final_transcripts

logger = logging.getLogger(__name__)

END_OF_AUDIO = "end"

app = FastAPI(title="aws-voice-kit")


class TextRequest(BaseModel):
	text: str
	language_code: str = "en"


class DocumentRequest(BaseModel):
	bucket: str
	key: str
	multipage: bool = False


def get_settings() -> Settings:
	if os.path.exists(".env"):
		load_dotenv()
	return load_settings()


def get_transport(settings: Settings = Depends(get_settings)) -> TranscriptTransport:
	return AmazonTranscribeTransport(settings.aws_region)


def _require_text(text: str) -> str:
	text = (text or "").strip()
	if not text:
		raise HTTPException(status_code=400, detail="Text must not be empty")
	return text


@app.post("/summarize")
def summarize(req: TextRequest, settings: Settings = Depends(get_settings)) -> dict:
	text = _require_text(req.text)
	try:
		return {"summary": bedrock.summarize(text, settings=settings)}
	except VoiceKitError as e:
		raise HTTPException(status_code=502, detail=f"Summarization error: {e}")


@app.post("/sentiment")
def sentiment(req: TextRequest, settings: Settings = Depends(get_settings)) -> dict:
	text = _require_text(req.text)
	try:
		result = comprehend.detect_sentiment(text, req.language_code, settings=settings)
	except VoiceKitError as e:
		raise HTTPException(status_code=502, detail=f"Sentiment error: {e}")
	return {
		"label": result.label,
		"scores": result.scores,
		"alert": comprehend.is_alertable(result, settings.sentiment_alert_threshold),
	}


@app.post("/extract-text")
def extract_text(req: DocumentRequest, settings: Settings = Depends(get_settings)) -> dict:
	extract = textract.extract_multipage_text if req.multipage else textract.extract_document_text
	try:
		return {"text": extract(req.bucket, req.key, settings=settings)}
	except VoiceKitError as e:
		raise HTTPException(status_code=502, detail=f"OCR error: {e}")


async def _websocket_audio(websocket: WebSocket) -> AsyncIterator[bytes]:
	while True:
		message = await websocket.receive()
		if message["type"] == "websocket.disconnect":
			return
		data: Optional[bytes] = message.get("bytes")
		if data:
			yield data
		elif message.get("text") == END_OF_AUDIO:
			return


@app.websocket("/transcribe")
async def transcribe(
	websocket: WebSocket,
	settings: Settings = Depends(get_settings),
	transport: TranscriptTransport = Depends(get_transport),
) -> None:
	"""Binary frames in, finalized transcripts out as JSON messages.

	The client sends the text frame "end" once its audio is exhausted.
	"""
	await websocket.accept()
	session = StreamSession.from_settings(settings)
	try:
		try:
			async for text in stream_final_transcripts(_websocket_audio(websocket), session, transport):
				await websocket.send_json({"type": "final", "text": text})
		except StreamError as e:
			await websocket.send_json({"type": "error", "detail": str(e)})
		else:
			await websocket.send_json({"type": "end"})
		await websocket.close()
	except WebSocketDisconnect:
		logger.info("transcription client disconnected")


def run() -> None:
	import uvicorn

	settings = get_settings()
	configure_logging(settings.log_level, settings.log_json)
	uvicorn.run(app, host="127.0.0.1", port=8000)
