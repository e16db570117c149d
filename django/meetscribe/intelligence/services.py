import json
import logging
import re
from typing import Callable, Dict, List, Optional

import requests
from django.conf import settings

from media_ingest.chunking import chunk_filename, split_audio
from .ratelimit import get_transcription_limiter

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "Summarize meetings concisely. Output JSON with:\n"
    "key_points: 3 main discussion points\n"
    "action_items: 2-3 specific tasks or decisions\n"
    "main_topics: 2 primary themes\n"
    "Keep points brief and clear. JSON format only."
)

SUMMARY_DEFAULTS = {
    "key_points": "No key points identified",
    "action_items": "No action items identified",
    "main_topics": "No main topics identified",
}


class IntelligenceError(Exception):
    status_code = 500
    error_code = "upstream_failed"


class TranscriptionError(IntelligenceError):
    error_code = "transcription_failed"

    def __init__(self, message: str, chunk_index: Optional[int] = None):
        super().__init__(message)
        self.chunk_index = chunk_index


class RateLimitError(IntelligenceError):
    status_code = 429
    error_code = "rate_limited"

    def __init__(self, message: str = "Rate limit exceeded. Please try again later.", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class SummaryError(IntelligenceError):
    error_code = "summary_failed"


def _auth_headers(error_cls) -> Dict[str, str]:
    if not settings.OPENAI_API_KEY:
        raise error_cls("OPENAI_API_KEY is not set")
    return {"Authorization": f"Bearer {settings.OPENAI_API_KEY}"}


def _upstream_message(resp: requests.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    text = (resp.text or "").strip()
    return text[:500] if text else f"HTTP {resp.status_code}"


def _retry_after(resp: requests.Response) -> Optional[float]:
    value = resp.headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


def transcribe_audio_chunk(data: bytes, filename: str, content_type: str) -> str:
    """Send one audio buffer to the speech-to-text endpoint.

    Raises ``RateLimitError`` when upstream answers 429 and
    ``TranscriptionError`` for every other failure.
    """
    headers = _auth_headers(TranscriptionError)
    form = {
        "model": settings.TRANSCRIPTION_MODEL,
        "language": settings.TRANSCRIPTION_LANGUAGE,
        "response_format": settings.TRANSCRIPTION_RESPONSE_FORMAT,
    }
    files = {"file": (filename, data, content_type or "application/octet-stream")}

    try:
        resp = requests.post(
            f"{settings.OPENAI_BASE_URL.rstrip('/')}/audio/transcriptions",
            headers=headers,
            data=form,
            files=files,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
        )
    except requests.RequestException as exc:
        raise TranscriptionError(str(exc)) from exc

    if resp.status_code == 429:
        raise RateLimitError(retry_after=_retry_after(resp))
    if not resp.ok:
        raise TranscriptionError(_upstream_message(resp))

    if settings.TRANSCRIPTION_RESPONSE_FORMAT == "text":
        return resp.text.strip()
    try:
        payload = resp.json()
    except ValueError as exc:
        raise TranscriptionError("Transcription response was not valid JSON") from exc
    text = payload.get("text") if isinstance(payload, dict) else None
    if not isinstance(text, str):
        raise TranscriptionError("Transcription response missing text")
    return text.strip()


def transcribe_audio(
    data: bytes,
    filename: str,
    content_type: str,
    *,
    chunk_size: Optional[int] = None,
    limiter=None,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> str:
    """Transcribe a whole recording, splitting it when it is too large.

    Chunks go out strictly one after another in index order, each paced by
    the shared rate limiter. The first failing chunk aborts the run: a
    rate limit propagates as is, anything else is re-raised with the chunk
    index. Per-chunk texts are joined with a single space.
    """
    chunk_size = chunk_size or settings.TRANSCRIPTION_CHUNK_BYTES
    limiter = limiter or get_transcription_limiter()
    chunks = split_audio(data, chunk_size)
    total = len(chunks)

    if total == 1:
        limiter.acquire()
        try:
            text = transcribe_audio_chunk(data, filename, content_type)
        except RateLimitError:
            raise
        except TranscriptionError as exc:
            raise TranscriptionError(f"Failed to transcribe audio: {exc}", chunk_index=0) from exc
        if on_progress:
            on_progress(1, 1)
        return text

    logger.info("Processing %s chunks for %s", total, filename)
    texts: List[str] = []
    for chunk in chunks:
        limiter.acquire()
        logger.info("Transcribing chunk %s/%s", chunk.index + 1, total)
        try:
            text = transcribe_audio_chunk(
                chunk.data,
                chunk_filename(chunk.index, filename),
                content_type,
            )
        except RateLimitError:
            logger.warning("Rate limited on chunk %s/%s", chunk.index + 1, total)
            raise
        except TranscriptionError as exc:
            raise TranscriptionError(
                f"Failed to transcribe chunk {chunk.index}: {exc}",
                chunk_index=chunk.index,
            ) from exc
        texts.append(text)
        if on_progress:
            on_progress(chunk.index + 1, total)

    return " ".join(texts)


def generate_summary(transcript: str) -> Dict[str, List[str]]:
    try:
        headers = _auth_headers(SummaryError)
        payload = {
            "model": settings.SUMMARY_MODEL,
            "messages": [
                {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                {"role": "user", "content": f"Summarize meeting: {transcript}"},
            ],
            "response_format": {"type": "json_object"},
            "temperature": settings.SUMMARY_TEMPERATURE,
            "max_tokens": settings.SUMMARY_MAX_TOKENS,
        }
        resp = requests.post(
            f"{settings.OPENAI_BASE_URL.rstrip('/')}/chat/completions",
            headers=headers,
            json=payload,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
        )
        if not resp.ok:
            raise SummaryError(_upstream_message(resp))
        content = _extract_message_content(resp.json())
    except (SummaryError, requests.RequestException, ValueError) as exc:
        logger.exception("Summary generation failed")
        raise SummaryError(f"Failed to generate summary: {exc}") from exc

    return parse_summary(content)


def parse_summary(text: str) -> Dict[str, List[str]]:
    """Turn a model reply into the three summary lists.

    Present categories keep their items as given, with non-string items
    stringified. Missing, empty or malformed categories fall back to a
    placeholder entry, so every list in the result has at least one item.
    """
    data = _safe_parse_json(text or "") or {}
    summary: Dict[str, List[str]] = {}
    for key, placeholder in SUMMARY_DEFAULTS.items():
        value = data.get(key)
        items = [item if isinstance(item, str) else str(item) for item in value] if isinstance(value, list) else []
        summary[key] = items or [placeholder]
    return summary


def _extract_message_content(payload) -> str:
    choices = payload.get("choices") if isinstance(payload, dict) else None
    if not isinstance(choices, list) or not choices:
        raise SummaryError("Response missing choices")
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict):
        raise SummaryError("Response missing message")
    content = message.get("content")
    if content is None:
        return ""
    if not isinstance(content, str):
        raise SummaryError("Response content is not text")
    return content


def _safe_parse_json(text: str) -> Optional[Dict]:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```(json)?", "", cleaned, flags=re.IGNORECASE).strip()
        cleaned = re.sub(r"```$", "", cleaned).strip()

    match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if match:
        cleaned = match.group(0)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Failed to parse summary JSON response: %s", text[:200])
        return None
    return data if isinstance(data, dict) else None
