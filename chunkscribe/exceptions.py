"""
chunkscribe.exceptions - Custom exception classes.

All Chunkscribe-specific exceptions inherit from ChunkscribeError.
"""


class ChunkscribeError(Exception):
    """Base exception for all Chunkscribe errors."""

    pass


class ConfigError(ChunkscribeError):
    """Configuration loading or validation error."""

    pass


class InvalidPolicy(ConfigError):
    """Segment length / overlap combination cannot be planned."""

    pass


class ExtractionError(ChunkscribeError):
    """Duration probe or clip extraction error."""

    pass


class TranscriptionError(ChunkscribeError):
    """Transcription error."""

    pass


class TranscriptionUnavailable(TranscriptionError):
    """Transcription service could not be reached or refused the request."""

    def __init__(self, message: str, reason: str = "network", retryable: bool = True):
        self.reason = reason
        self.retryable = retryable
        super().__init__(message)


class MalformedResponse(TranscriptionError):
    """Transcription service returned a payload that cannot be parsed."""

    pass


class StitchInvariantViolation(ChunkscribeError):
    """Stitched timeline is out of order or overlapping."""

    pass


class DependencyError(ChunkscribeError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")
