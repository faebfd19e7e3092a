"""
chunkscribe.formats.structured - Structured (verbose JSON) transcripts.

Normalizes the service's ``verbose_json`` payload into the transcript dict
used throughout the package:

    {
        "text": str,
        "language": str | None,
        "duration": float,
        "words": [{"word", "start", "end"}, ...],
        "segments": [{"id", "start", "end", "text"}, ...],
    }
"""

from __future__ import annotations

import json
from typing import Any

from chunkscribe.exceptions import MalformedResponse


def _timed_item(raw: Any, kind: str, index: int) -> tuple[float, float]:
    if not isinstance(raw, dict):
        raise MalformedResponse(f"{kind} {index} is not an object")
    try:
        start = float(raw["start"])
        end = float(raw["end"])
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponse(f"{kind} {index} has invalid timing: {e}") from e
    if end < start:
        raise MalformedResponse(f"{kind} {index} ends before it starts")
    return start, end


def _text_field(raw: dict[str, Any], keys: tuple[str, ...], kind: str, index: int) -> str:
    value = next((raw[k] for k in keys if k in raw), "")
    if not isinstance(value, str):
        raise MalformedResponse(f"{kind} {index} has non-text {keys[0]!r}: {value!r}")
    return value


def parse_structured(payload: str | dict[str, Any]) -> dict[str, Any]:
    """Parse a verbose JSON transcription payload.

    Args:
        payload: JSON text or an already decoded dict

    Returns:
        Normalized structured transcript dict

    Raises:
        MalformedResponse: If the payload is not valid JSON or lacks timing data
    """
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedResponse(f"Invalid JSON from transcription service: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedResponse("Structured transcript must be a JSON object")

    raw_words = payload.get("words") or []
    raw_segments = payload.get("segments") or []
    if not isinstance(raw_words, list) or not isinstance(raw_segments, list):
        raise MalformedResponse("'words' and 'segments' must be lists")

    words = []
    for i, w in enumerate(raw_words):
        start, end = _timed_item(w, "word", i)
        words.append({"word": _text_field(w, ("word", "text"), "word", i), "start": start, "end": end})

    segments = []
    for i, seg in enumerate(raw_segments):
        start, end = _timed_item(seg, "segment", i)
        segments.append(
            {
                "id": seg.get("id", i),
                "start": start,
                "end": end,
                "text": _text_field(seg, ("text",), "segment", i).strip(),
            }
        )

    text = payload.get("text")
    if text is None:
        text = join_segment_text(segments)
    elif not isinstance(text, str):
        raise MalformedResponse(f"'text' must be a string, got {type(text).__name__}")

    try:
        duration = float(payload.get("duration") or content_end(segments, words))
    except (TypeError, ValueError) as e:
        raise MalformedResponse(f"Invalid duration: {payload.get('duration')!r}") from e

    return {
        "text": text.strip(),
        "language": payload.get("language"),
        "duration": duration,
        "words": words,
        "segments": segments,
    }


def join_segment_text(segments: list[dict[str, Any]]) -> str:
    """Join segment texts with single spaces, skipping empty entries."""
    return " ".join(seg["text"].strip() for seg in segments if seg["text"].strip())


def content_end(*sequences: list[dict[str, Any]]) -> float:
    """Latest end time across the given item sequences (0.0 when all are empty)."""
    return max((item["end"] for items in sequences for item in items), default=0.0)


def render_json(transcript: dict[str, Any]) -> str:
    """Render a structured transcript as pretty-printed JSON."""
    return json.dumps(transcript, indent=2, ensure_ascii=False) + "\n"
