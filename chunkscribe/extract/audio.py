"""
chunkscribe.extract.audio - FFmpeg duration probing and clip extraction.

Probes the source duration with ffprobe and cuts each planned segment into
a 16kHz mono mp3 clip that fits under the transcription upload limit. Clips
are temporary files scoped to a ``with`` block.
"""

from __future__ import annotations

import json
import subprocess
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from chunkscribe.exceptions import ExtractionError
from chunkscribe.logging import logger
from chunkscribe.segment.planner import SegmentDescriptor


class DurationProbe(Protocol):
    def probe(self, source: Path) -> float: ...


class ClipExtractor(Protocol):
    def extract(self, source: Path, segment: SegmentDescriptor, output: Path) -> Path: ...


def probe_duration(path: Path) -> float:
    """Probe a media file's duration using ffprobe.

    Args:
        path: Path to audio or video file

    Returns:
        Duration in seconds, or 0.0 if the container reports none

    Raises:
        ExtractionError: If ffprobe cannot read the file
    """
    cmd = [
        "ffprobe",
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_format",
        str(path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise ExtractionError(f"ffprobe could not be started: {e}") from e

    if result.returncode != 0:
        raise ExtractionError(f"ffprobe failed for {path}: {result.stderr}")

    try:
        data = json.loads(result.stdout or "{}")
        return float(data.get("format", {}).get("duration") or 0)
    except (json.JSONDecodeError, TypeError, ValueError):
        return 0.0


class FFprobeDurationProbe:
    """DurationProbe backed by ffprobe."""

    def probe(self, source: Path) -> float:
        return probe_duration(source)


class FFmpegClipExtractor:
    """ClipExtractor that re-encodes a time window to mono mp3 with FFmpeg."""

    def __init__(self, bitrate: str = "64k", sample_rate: int = 16000) -> None:
        self.bitrate = bitrate
        self.sample_rate = sample_rate

    def build_command(self, source: Path, segment: SegmentDescriptor, output: Path) -> list[str]:
        return [
            "ffmpeg",
            "-y",
            "-ss",
            f"{segment.start:.3f}",
            "-t",
            f"{segment.length:.3f}",
            "-i",
            str(source),
            "-vn",
            "-ac",
            "1",
            "-ar",
            str(self.sample_rate),
            "-b:a",
            self.bitrate,
            str(output),
        ]

    def extract(self, source: Path, segment: SegmentDescriptor, output: Path) -> Path:
        """Cut one segment window from ``source`` into ``output``.

        Raises:
            ExtractionError: If FFmpeg fails or produces no file
        """
        cmd = self.build_command(source, segment, output)
        logger.debug("Extracting segment %d: %s", segment.index, " ".join(cmd))

        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise ExtractionError(f"FFmpeg could not be started: {e}") from e

        if proc.returncode != 0:
            raise ExtractionError(f"FFmpeg extraction of segment {segment.index} failed: {proc.stderr}")
        if not output.exists() or output.stat().st_size == 0:
            raise ExtractionError(f"FFmpeg produced no audio for segment {segment.index}")

        return output


@contextmanager
def segment_clip(
    extractor: ClipExtractor,
    source: Path,
    segment: SegmentDescriptor,
    attempts: int = 2,
    suffix: str = ".mp3",
) -> Iterator[Path]:
    """Materialize a segment as a temporary clip, removed when the block exits.

    Args:
        extractor: Clip extractor to run
        source: Source media file
        segment: Window to cut
        attempts: Extraction attempts before the ExtractionError propagates
        suffix: Clip file extension

    Yields:
        Path to the extracted clip

    Raises:
        ExtractionError: If every extraction attempt fails
    """
    with tempfile.NamedTemporaryFile(
        prefix=f"chunkscribe-seg{segment.index:03d}-",
        suffix=suffix,
        delete=False,
    ) as tmp:
        clip_path = Path(tmp.name)

    clip = None
    try:
        for attempt in range(1, attempts + 1):
            try:
                clip = extractor.extract(source, segment, clip_path)
                break
            except ExtractionError as e:
                if attempt >= attempts:
                    raise
                logger.warning(
                    "Extraction of segment %d failed (attempt %d/%d): %s",
                    segment.index,
                    attempt,
                    attempts,
                    e,
                )
        yield clip
    finally:
        clip_path.unlink(missing_ok=True)
        if clip is not None and clip != clip_path:
            clip.unlink(missing_ok=True)
        logger.debug("Removed clip %s", clip or clip_path)
