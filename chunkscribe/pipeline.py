"""
chunkscribe.pipeline - Segment-by-segment transcription orchestration.

Probes the source, plans overlapping segments, then for each segment in
order extracts a clip, transcribes it with the previous segment's trailing
text as context, and finally stitches all results into one transcript.
Any failure aborts the run; no partial transcript is returned.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from chunkscribe.config import ChunkscribeConfig
from chunkscribe.exceptions import ExtractionError, TranscriptionUnavailable
from chunkscribe.extract.audio import (
    ClipExtractor,
    DurationProbe,
    FFmpegClipExtractor,
    FFprobeDurationProbe,
    segment_clip,
)
from chunkscribe.formats.structured import render_json
from chunkscribe.formats.vtt import render_vtt
from chunkscribe.logging import logger
from chunkscribe.segment.planner import SegmentDescriptor, plan_segments, validate_policy
from chunkscribe.stitch.merge import SegmentResult, stitch
from chunkscribe.transcribe.engine import OpenAITranscriber, Transcriber
from chunkscribe.utils import format_duration, format_size, tail_words

EXTRACTION_ATTEMPTS = 2


class TranscriptionPipeline:
    """Sequential extract → transcribe → stitch run over one source file."""

    def __init__(
        self,
        transcriber: Transcriber,
        config: ChunkscribeConfig | None = None,
        extractor: ClipExtractor | None = None,
        probe: DurationProbe | None = None,
        sleep: Callable[[float], None] = time.sleep,
        console=None,
    ) -> None:
        self.transcriber = transcriber
        self.config = config or ChunkscribeConfig(output_format=transcriber.output_format)
        self.extractor = extractor or FFmpegClipExtractor(bitrate=self.config.clip_bitrate)
        self.probe = probe or FFprobeDurationProbe()
        self.sleep = sleep
        self.console = console
        self.segment_states: dict[int, str] = {}

    def plan(self, source: Path) -> list[SegmentDescriptor]:
        """Probe ``source`` and plan its segments.

        A source whose duration cannot be probed is planned as one segment
        when it is small enough to upload whole.

        Raises:
            InvalidPolicy: If segment length / overlap are invalid
            ExtractionError: If the source is unreadable, or too large with unknown duration
        """
        validate_policy(self.config.segment_length, self.config.overlap)

        duration = self.probe.probe(source)
        if duration <= 0:
            if self._fits_upload(source):
                logger.warning("Duration of %s unknown; sending it whole", source.name)
                # Nominal length only; a single segment is never shifted.
                return [SegmentDescriptor(index=0, start=0.0, length=self.config.segment_length)]
            raise ExtractionError(
                f"Cannot determine the duration of {source} and it is over the "
                f"{format_size(self.config.max_upload_bytes)} upload limit"
            )

        return plan_segments(duration, self.config.segment_length, self.config.overlap)

    def run(self, source: Path) -> dict[str, Any]:
        """Transcribe ``source`` into one stitched transcript.

        Args:
            source: Audio or video file

        Returns:
            Cue track (vtt) or structured transcript (json) for the whole source

        Raises:
            InvalidPolicy: Bad segmentation settings
            ExtractionError: Clip extraction failed twice, or a clip is too large
            TranscriptionUnavailable: Service unavailable after all retries
            MalformedResponse: Service reply could not be parsed
            StitchInvariantViolation: Merged timeline is inconsistent
        """
        segments = self.plan(source)
        send_whole = len(segments) == 1 and self._fits_upload(source)
        self.segment_states = {s.index: "pending" for s in segments}

        if self.console:
            self.console.print(
                f"[dim]  {source.name}: {len(segments)} segment(s) of "
                f"{format_duration(self.config.segment_length)} "
                f"with {self.config.overlap:g}s overlap[/dim]"
            )

        previous_text = ""
        results: list[SegmentResult] = []
        for segment in segments:
            context_hint = tail_words(previous_text, self.config.context_words)
            result = self._process_segment(source, segment, context_hint, send_whole)
            results.append(result)
            previous_text = result.recognized_text
            self.segment_states[segment.index] = "merged"

        return stitch(
            results,
            overlap=self.config.overlap,
            tolerance=self.config.stitch_tolerance,
            strategy=self.config.stitch_strategy,
        )

    def _fits_upload(self, path: Path) -> bool:
        return path.stat().st_size <= self.config.max_upload_bytes

    def _process_segment(
        self,
        source: Path,
        segment: SegmentDescriptor,
        context_hint: str,
        send_whole: bool,
    ) -> SegmentResult:
        if self.console:
            self.console.print(
                f"[dim]  Segment {segment.index + 1}: "
                f"{format_duration(segment.start)} - {format_duration(segment.end)}[/dim]"
            )

        if send_whole:
            self.segment_states[segment.index] = "transcribing"
            payload = self._transcribe_with_retry(source, segment, context_hint)
        else:
            self.segment_states[segment.index] = "extracting"
            with segment_clip(
                self.extractor, source, segment, attempts=EXTRACTION_ATTEMPTS
            ) as clip:
                size = clip.stat().st_size
                if size > self.config.max_upload_bytes:
                    raise ExtractionError(
                        f"Segment {segment.index} clip is {format_size(size)}, over the "
                        f"{format_size(self.config.max_upload_bytes)} upload limit; "
                        "lower segment_length or clip_bitrate"
                    )
                self.segment_states[segment.index] = "transcribing"
                payload = self._transcribe_with_retry(clip, segment, context_hint)

        return SegmentResult(descriptor=segment, kind=self.transcriber.output_format, payload=payload)

    def _transcribe_with_retry(
        self, clip: Path, segment: SegmentDescriptor, context_hint: str
    ) -> dict[str, Any]:
        attempts = self.config.max_retries
        for attempt in range(attempts):
            try:
                return self.transcriber.transcribe(clip, context_hint)
            except TranscriptionUnavailable as e:
                if not e.retryable or attempt >= attempts - 1:
                    raise
                delay = self.config.retry_delay * 2**attempt
                logger.warning(
                    "Segment %d: %s; retrying in %.1fs (%d/%d)",
                    segment.index,
                    e,
                    delay,
                    attempt + 2,
                    attempts,
                )
                if self.console:
                    self.console.print(
                        f"[yellow]  Retry {attempt + 2}/{attempts} ({e.reason})...[/yellow]"
                    )
                self.sleep(delay)

        raise TranscriptionUnavailable(f"Segment {segment.index}: no transcription attempts made")


def render_transcript(transcript: dict[str, Any], output_format: str) -> str:
    """Serialize a stitched transcript in the selected output format."""
    if output_format == "vtt":
        return render_vtt(transcript)
    return render_json(transcript)


def build_transcriber(config: ChunkscribeConfig, api_key: str | None = None) -> OpenAITranscriber:
    """Create the OpenAI transcriber described by ``config``."""
    return OpenAITranscriber(
        model=config.model,
        output_format=config.output_format,
        language=config.language,
        prompt=config.prompt,
        api_key=api_key,
        timeout=config.timeout,
    )


def transcribe_file(
    source: Path,
    config: ChunkscribeConfig,
    transcriber: Transcriber | None = None,
    console=None,
) -> str:
    """Transcribe one file and return the rendered transcript text."""
    pipeline = TranscriptionPipeline(
        transcriber=transcriber or build_transcriber(config),
        config=config,
        console=console,
    )
    return render_transcript(pipeline.run(source), config.output_format)
