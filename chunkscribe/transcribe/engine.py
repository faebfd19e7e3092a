"""
chunkscribe.transcribe.engine - Transcription service adapter.

Sends one bounded clip to the OpenAI transcription endpoint and parses the
reply into a cue track (``vtt``) or a structured transcript (``json``).
Failures are classified but never retried here; retry policy belongs to the
pipeline.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from chunkscribe.exceptions import (
    DependencyError,
    MalformedResponse,
    TranscriptionError,
    TranscriptionUnavailable,
)
from chunkscribe.formats.structured import parse_structured
from chunkscribe.formats.vtt import parse_vtt
from chunkscribe.logging import logger
from chunkscribe.utils import format_size

RETRYABLE_REASONS = {"rate_limit", "server", "network"}

OUTPUT_FORMATS = {"vtt", "json"}


class Transcriber(Protocol):
    output_format: str

    def transcribe(self, clip: Path, context_hint: str = "") -> dict[str, Any]: ...


def classify_status(status_code: int | None) -> str:
    """Map an HTTP status code from the service to a failure reason."""
    if status_code is None:
        return "network"
    if status_code == 429:
        return "rate_limit"
    if status_code in (401, 403):
        return "auth"
    if status_code == 408:
        return "network"
    if status_code >= 500:
        return "server"
    if 400 <= status_code < 500:
        return "bad_request"
    return "unknown"


def build_prompt(prompt: str, context_hint: str) -> str:
    """Combine the domain prompt with the previous segment's trailing text."""
    if not context_hint:
        return prompt
    if not prompt:
        return f"Previous context: {context_hint}"
    return f"{prompt} Previous context: {context_hint}"


def parse_response(response: Any, output_format: str) -> dict[str, Any]:
    """Parse a raw service response into a cue track or structured transcript.

    Raises:
        MalformedResponse: If the response does not have the expected shape
    """
    if output_format == "vtt":
        if not isinstance(response, str):
            raise MalformedResponse(
                f"Expected WebVTT text from service, got {type(response).__name__}"
            )
        return parse_vtt(response)

    if hasattr(response, "model_dump"):
        response = response.model_dump()
    if not isinstance(response, (str, dict)):
        raise MalformedResponse(f"Unexpected response type: {type(response).__name__}")
    return parse_structured(response)


def _import_openai() -> Any:
    try:
        import openai
    except ImportError as e:
        raise DependencyError(
            "openai", "openai package not installed", "Install with: pip install openai"
        ) from e
    return openai


class OpenAITranscriber:
    """Transcriber backed by the OpenAI audio transcription API."""

    def __init__(
        self,
        model: str = "whisper-1",
        output_format: str = "vtt",
        language: str | None = "en",
        prompt: str = "",
        api_key: str | None = None,
        timeout: float = 300.0,
        client: Any = None,
    ) -> None:
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of: {OUTPUT_FORMATS}")
        self.model = model
        self.output_format = output_format
        self.language = language
        self.prompt = prompt
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            openai = _import_openai()
            # The pipeline owns retries.
            self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def build_request(self, context_hint: str = "") -> dict[str, Any]:
        """Build the keyword arguments for ``audio.transcriptions.create``."""
        kwargs: dict[str, Any] = {"model": self.model}
        if self.language:
            kwargs["language"] = self.language

        prompt = build_prompt(self.prompt, context_hint)
        if prompt:
            kwargs["prompt"] = prompt

        if self.output_format == "vtt":
            kwargs["response_format"] = "vtt"
        else:
            kwargs["response_format"] = "verbose_json"
            kwargs["timestamp_granularities"] = ["word", "segment"]
        return kwargs

    def transcribe(self, clip: Path, context_hint: str = "") -> dict[str, Any]:
        """Transcribe one clip.

        Args:
            clip: Path to an audio clip under the upload limit
            context_hint: Trailing text of the previous segment (may be empty)

        Returns:
            Cue track dict (vtt) or structured transcript dict (json)

        Raises:
            TranscriptionUnavailable: On network, auth, rate-limit or request errors
            MalformedResponse: If the reply cannot be parsed
        """
        openai = _import_openai()
        client = self._get_client()
        kwargs = self.build_request(context_hint)

        try:
            logger.info("Transcribing %s (%s)", clip.name, format_size(clip.stat().st_size))
            with open(clip, "rb") as f:
                response = client.audio.transcriptions.create(file=f, **kwargs)
        except openai.APIStatusError as e:
            reason = classify_status(e.status_code)
            raise TranscriptionUnavailable(
                f"Transcription request failed ({reason}, HTTP {e.status_code}): {e.message}",
                reason=reason,
                retryable=reason in RETRYABLE_REASONS,
            ) from e
        except openai.APIConnectionError as e:
            raise TranscriptionUnavailable(
                f"Transcription service unreachable: {e}", reason="network"
            ) from e
        except openai.APIResponseValidationError as e:
            raise MalformedResponse(f"Unexpected transcription response: {e}") from e
        except OSError as e:
            raise TranscriptionError(f"Cannot read clip {clip}: {e}") from e

        return parse_response(response, self.output_format)
