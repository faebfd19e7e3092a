"""
chunkscribe.segment.planner - Overlapping segment window planning.

Segment ``i`` starts ``i * (segment_length - overlap)`` seconds into the
recording, so each window re-covers the last ``overlap`` seconds of the one
before it. The final window is clipped to the recording's end.
"""

from __future__ import annotations

from dataclasses import dataclass

from chunkscribe.exceptions import InvalidPolicy


@dataclass(frozen=True)
class SegmentDescriptor:
    """One window of the source audio, in seconds."""

    index: int
    start: float
    length: float

    @property
    def end(self) -> float:
        return self.start + self.length


def validate_policy(segment_length: float, overlap: float) -> None:
    """Reject segment/overlap settings that cannot be planned.

    Raises:
        InvalidPolicy: If segment_length <= 0, overlap < 0 or overlap >= segment_length
    """
    if segment_length <= 0:
        raise InvalidPolicy(f"segment_length must be positive, got {segment_length}")
    if overlap < 0:
        raise InvalidPolicy(f"overlap must not be negative, got {overlap}")
    if overlap >= segment_length:
        raise InvalidPolicy(
            f"overlap ({overlap}s) must be shorter than segment_length ({segment_length}s)"
        )


def plan_segments(
    total_duration: float,
    segment_length: float,
    overlap: float,
) -> list[SegmentDescriptor]:
    """Plan overlapping segment windows covering a recording.

    Args:
        total_duration: Recording duration in seconds (must be known, > 0)
        segment_length: Nominal window length in seconds
        overlap: Seconds each window re-covers from the previous one

    Returns:
        Ordered list of SegmentDescriptor covering [0, total_duration)

    Raises:
        InvalidPolicy: If the policy is invalid or the duration is not positive
    """
    validate_policy(segment_length, overlap)
    if total_duration <= 0:
        raise InvalidPolicy(f"Cannot plan segments for duration {total_duration}")

    if total_duration <= segment_length:
        return [SegmentDescriptor(index=0, start=0.0, length=total_duration)]

    stride = segment_length - overlap
    segments: list[SegmentDescriptor] = []
    index = 0
    while True:
        start = index * stride
        length = min(segment_length, total_duration - start)
        segments.append(SegmentDescriptor(index=index, start=start, length=length))
        if start + length >= total_duration:
            break
        index += 1

    return segments
