"""
chunkscribe.formats.vtt - WebVTT cue track parsing and rendering.

A cue track is a dict with the document header line and an ordered list of
cues, each ``{"start": float, "end": float, "text": str}``.
"""

from __future__ import annotations

import re
from typing import Any

from chunkscribe.exceptions import MalformedResponse
from chunkscribe.formats.timecode import format_timestamp, parse_timestamp

DEFAULT_HEADER = "WEBVTT"

_CUE_TIMING_RE = re.compile(r"^\s*(\S+)\s+-->\s+(\S+)")


def parse_vtt(document: str) -> dict[str, Any]:
    """Parse a WebVTT document into a cue track.

    Cue identifiers, cue settings and NOTE/STYLE blocks are dropped; cue text
    lines are kept joined by newlines.

    Args:
        document: Raw WebVTT text as returned by the transcription service

    Returns:
        Cue track dict with 'header' and 'cues'

    Raises:
        MalformedResponse: If the document is not WebVTT or a cue is invalid
    """
    if not isinstance(document, str):
        raise MalformedResponse(f"Expected WebVTT text, got {type(document).__name__}")

    text = document.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")
    blocks = re.split(r"\n\s*\n", text.strip())

    header = blocks[0].split("\n")[0].strip() if blocks else ""
    if not header.startswith("WEBVTT"):
        raise MalformedResponse("Missing WEBVTT header")

    cues = []
    for block in blocks[1:]:
        lines = [line for line in block.split("\n") if line.strip()]
        if not lines or lines[0].startswith(("NOTE", "STYLE", "REGION")):
            continue

        timing_index = next((i for i, line in enumerate(lines) if "-->" in line), None)
        if timing_index is None:
            raise MalformedResponse(f"Cue block without timing line: {block[:60]!r}")

        match = _CUE_TIMING_RE.match(lines[timing_index])
        if not match:
            raise MalformedResponse(f"Invalid cue timing: {lines[timing_index]!r}")

        try:
            start = parse_timestamp(match.group(1))
            end = parse_timestamp(match.group(2))
        except ValueError as e:
            raise MalformedResponse(str(e)) from e

        if end < start:
            raise MalformedResponse(f"Cue ends before it starts: {lines[timing_index]!r}")

        cues.append(
            {
                "start": start,
                "end": end,
                "text": "\n".join(line.strip() for line in lines[timing_index + 1 :]),
            }
        )

    return {"header": header, "cues": cues}


def render_vtt(track: dict[str, Any]) -> str:
    """Render a cue track as a WebVTT document."""
    blocks = [track.get("header") or DEFAULT_HEADER]
    for cue in track.get("cues", []):
        timing = f"{format_timestamp(cue['start'])} --> {format_timestamp(cue['end'])}"
        blocks.append(f"{timing}\n{cue['text']}" if cue["text"] else timing)
    return "\n\n".join(blocks) + "\n"


def cue_text(track: dict[str, Any]) -> str:
    """Return the spoken text of a cue track as one line."""
    return " ".join(word for cue in track.get("cues", []) for word in cue["text"].split())
