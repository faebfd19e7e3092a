"""
chunkscribe.stitch.merge - Merge per-segment transcripts into one timeline.

Each segment's result is in clip-local time and, apart from the first,
starts with ``overlap`` seconds of audio the previous segment already
covered. Stitching shifts every item onto the global timeline, drops the
items that start inside that overlap, and concatenates the rest.

Two offset strategies are supported:

- ``clip``: a segment's local zero is the start of its planned window.
- ``measured``: a segment's local zero is where the previous segment's
  recognized content ended, accumulated segment by segment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from chunkscribe.exceptions import StitchInvariantViolation
from chunkscribe.formats.structured import content_end, join_segment_text
from chunkscribe.formats.timecode import shift_seconds
from chunkscribe.formats.vtt import DEFAULT_HEADER, cue_text
from chunkscribe.logging import logger
from chunkscribe.segment.planner import SegmentDescriptor

STRATEGIES = {"clip", "measured"}

# Float slack for the inclusive keep threshold.
THRESHOLD_EPSILON = 1e-6


@dataclass(frozen=True)
class SegmentResult:
    """A transcription payload paired with the segment window it came from."""

    descriptor: SegmentDescriptor
    kind: str
    payload: dict[str, Any]

    @property
    def recognized_text(self) -> str:
        if self.kind == "vtt":
            return cue_text(self.payload)
        return self.payload.get("text") or join_segment_text(self.payload.get("segments", []))

    @property
    def content_end(self) -> float:
        if self.kind == "vtt":
            return content_end(self.payload.get("cues", []))
        return content_end(self.payload.get("segments", []), self.payload.get("words", []))


class _Timeline:
    """Running global offset for one stitch pass."""

    def __init__(self, overlap: float, strategy: str) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"strategy must be one of: {STRATEGIES}")
        self.overlap = overlap
        self.strategy = strategy
        self.measured_offset = 0.0
        self.first = True

    def begin(self, result: SegmentResult) -> tuple[float, float | None]:
        """Return (offset, keep threshold) for the next segment."""
        if self.strategy == "clip":
            offset = result.descriptor.start
        else:
            offset = self.measured_offset
        if self.first:
            return offset, None
        return offset, offset + self.overlap

    def advance(self, result: SegmentResult) -> None:
        self.first = False
        if self.strategy == "measured":
            local_end = result.content_end
            self.measured_offset += local_end if local_end > 0 else result.descriptor.length


def _shift_and_filter(
    items: list[dict[str, Any]], offset: float, threshold: float | None
) -> list[dict[str, Any]]:
    kept = []
    for item in items:
        start = shift_seconds(item["start"], offset)
        if threshold is not None and start < threshold - THRESHOLD_EPSILON:
            continue
        kept.append({**item, "start": start, "end": shift_seconds(item["end"], offset)})
    return kept


def check_timeline(items: list[dict[str, Any]], label: str, tolerance: float = 0.5) -> None:
    """Verify stitched items are ordered and do not overlap beyond ``tolerance``.

    Raises:
        StitchInvariantViolation: On the first out-of-order or overlapping pair
    """
    for i in range(1, len(items)):
        prev, cur = items[i - 1], items[i]
        if cur["start"] < prev["start"] - THRESHOLD_EPSILON:
            raise StitchInvariantViolation(
                f"{label} {i} starts at {cur['start']:.3f}s, before {label} {i - 1} "
                f"at {prev['start']:.3f}s"
            )
        if prev["end"] > cur["start"] + tolerance:
            raise StitchInvariantViolation(
                f"{label} {i - 1} ends at {prev['end']:.3f}s, overlapping {label} {i} "
                f"starting at {cur['start']:.3f}s by more than {tolerance}s"
            )


def _check_order(results: list[SegmentResult], kind: str) -> None:
    if not results:
        raise ValueError("No segment results to stitch")
    for prev, cur in zip(results, results[1:]):
        if cur.descriptor.index <= prev.descriptor.index:
            raise StitchInvariantViolation(
                f"Segment results out of order: {prev.descriptor.index} before "
                f"{cur.descriptor.index}"
            )
    for result in results:
        if result.kind != kind:
            raise ValueError(f"Cannot stitch {result.kind} result into a {kind} transcript")


def stitch_cue_tracks(
    results: list[SegmentResult],
    overlap: float,
    tolerance: float = 0.5,
    strategy: str = "clip",
) -> dict[str, Any]:
    """Stitch ordered cue track results into one cue track."""
    _check_order(results, "vtt")
    timeline = _Timeline(overlap, strategy)

    cues: list[dict[str, Any]] = []
    for result in results:
        offset, threshold = timeline.begin(result)
        segment_cues = result.payload.get("cues", [])
        kept = _shift_and_filter(segment_cues, offset, threshold)
        logger.debug(
            "Segment %d: offset %.3fs, kept %d of %d cues",
            result.descriptor.index,
            offset,
            len(kept),
            len(segment_cues),
        )
        cues.extend(kept)
        timeline.advance(result)

    check_timeline(cues, "cue", tolerance)
    return {"header": results[0].payload.get("header") or DEFAULT_HEADER, "cues": cues}


def stitch_structured(
    results: list[SegmentResult],
    overlap: float,
    tolerance: float = 0.5,
    strategy: str = "clip",
) -> dict[str, Any]:
    """Stitch ordered structured results into one word/segment transcript.

    The merged ``text`` is rebuilt from the kept segment entries; the per-clip
    ``text`` fields would repeat the overlap.
    """
    _check_order(results, "json")
    timeline = _Timeline(overlap, strategy)

    words: list[dict[str, Any]] = []
    segments: list[dict[str, Any]] = []
    offset = 0.0
    for result in results:
        offset, threshold = timeline.begin(result)
        kept_words = _shift_and_filter(result.payload.get("words", []), offset, threshold)
        kept_segments = _shift_and_filter(result.payload.get("segments", []), offset, threshold)
        logger.debug(
            "Segment %d: offset %.3fs, kept %d words and %d segments",
            result.descriptor.index,
            offset,
            len(kept_words),
            len(kept_segments),
        )
        words.extend(kept_words)
        segments.extend(kept_segments)
        timeline.advance(result)

    for i, seg in enumerate(segments):
        seg["id"] = i

    check_timeline(words, "word", tolerance)
    check_timeline(segments, "segment", tolerance)

    if len(results) == 1 and results[0].payload.get("text"):
        text = results[0].payload["text"]
    elif segments:
        text = join_segment_text(segments)
    else:
        text = " ".join(w["word"].strip() for w in words if w["word"].strip())

    last = results[-1].payload
    last_duration = float(last.get("duration") or 0.0)

    language = next(
        (r.payload["language"] for r in results if r.payload.get("language")), None
    )

    return {
        "text": text,
        "language": language,
        "duration": max(content_end(segments, words), offset + last_duration),
        "words": words,
        "segments": segments,
    }


def stitch(
    results: list[SegmentResult],
    overlap: float,
    tolerance: float = 0.5,
    strategy: str = "clip",
) -> dict[str, Any]:
    """Stitch ordered segment results of either shape.

    Args:
        results: Segment results in segment order, all of the same kind
        overlap: Planned overlap between consecutive segments, in seconds
        tolerance: Allowed end/start overlap between adjacent items, in seconds
        strategy: Offset strategy, ``clip`` or ``measured``

    Returns:
        Cue track or structured transcript spanning the whole recording

    Raises:
        StitchInvariantViolation: If the merged timeline is not monotonic
    """
    if not results:
        raise ValueError("No segment results to stitch")
    if results[0].kind == "vtt":
        return stitch_cue_tracks(results, overlap, tolerance, strategy)
    return stitch_structured(results, overlap, tolerance, strategy)
