"""
chunkscribe.config - YAML config loading, profile merging, validation.

Handles loading chunkscribe.yaml from a working directory, applying profile
defaults, and validating segmentation and service parameters.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

CONFIG_FILENAME = "chunkscribe.yaml"

DEFAULT_PROMPT = (
    "This is a transcript about Vue.js and Nuxt.js, not Next.js. The content may "
    "include technical terms related to Vue, Nuxt, JavaScript, and web development."
)


class ChunkscribeConfig(BaseModel):
    """Resolved configuration for a transcription run."""

    profile: str = "default"

    model: str = "whisper-1"
    language: str | None = "en"
    prompt: str = DEFAULT_PROMPT
    output_format: str = "vtt"

    segment_length: float = Field(default=600.0, gt=0.0)
    overlap: float = Field(default=20.0, ge=0.0)
    max_upload_mb: float = Field(default=25.0, gt=0.0)
    context_words: int = Field(default=50, ge=0)

    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=2.0, ge=0.0)
    timeout: float = Field(default=300.0, gt=0.0)

    stitch_strategy: str = "clip"
    stitch_tolerance: float = Field(default=0.5, ge=0.0)

    clip_bitrate: str = "64k"

    config_path: Path | None = None

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        valid = {"vtt", "json"}
        if v not in valid:
            raise ValueError(f"output_format must be one of: {valid}")
        return v

    @field_validator("stitch_strategy")
    @classmethod
    def validate_stitch_strategy(cls, v: str) -> str:
        valid = {"clip", "measured"}
        if v not in valid:
            raise ValueError(f"stitch_strategy must be one of: {valid}")
        return v

    @field_validator("profile")
    @classmethod
    def validate_profile(cls, v: str) -> str:
        if v not in BUILTIN_PROFILES:
            raise ValueError(f"profile must be one of: {set(BUILTIN_PROFILES)}")
        return v

    @model_validator(mode="after")
    def validate_overlap(self) -> ChunkscribeConfig:
        if self.overlap >= self.segment_length:
            raise ValueError(
                f"overlap ({self.overlap}s) must be shorter than "
                f"segment_length ({self.segment_length}s)"
            )
        return self

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 * 1024)


BUILTIN_PROFILES: dict[str, dict[str, Any]] = {
    "default": {
        "segment_length": 600.0,
        "overlap": 20.0,
        "context_words": 50,
    },
    "podcast": {
        "segment_length": 900.0,
        "overlap": 30.0,
        "context_words": 80,
    },
    "lecture": {
        "segment_length": 480.0,
        "overlap": 10.0,
        "context_words": 50,
    },
}


def load_profile(name: str) -> dict[str, Any]:
    """Load a built-in profile by name."""
    if name in BUILTIN_PROFILES:
        return BUILTIN_PROFILES[name].copy()
    raise ValueError(f"Unknown profile: {name}")


def merge_config(overrides: dict[str, Any], base: dict[str, Any]) -> dict[str, Any]:
    """Merge overrides on top of base settings. None values do not override."""
    merged = base.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def read_config_file(directory: Path) -> dict[str, Any]:
    """Read raw settings from chunkscribe.yaml in ``directory``."""
    config_file = directory / CONFIG_FILENAME
    if not config_file.exists():
        raise FileNotFoundError(f"No {CONFIG_FILENAME} found in {directory}")

    with open(config_file) as f:
        return yaml.safe_load(f) or {}


def load_config(directory: Path, overrides: dict[str, Any] | None = None) -> ChunkscribeConfig:
    """Load and validate configuration from a directory.

    Args:
        directory: Directory containing chunkscribe.yaml
        overrides: Values taking precedence over the file (e.g. CLI options)

    Returns:
        Validated ChunkscribeConfig

    Raises:
        FileNotFoundError: If chunkscribe.yaml is missing
    """
    raw_config = read_config_file(directory)
    merged = resolve_settings(raw_config, overrides)
    merged["config_path"] = directory / CONFIG_FILENAME
    return ChunkscribeConfig(**merged)


def resolve_settings(
    raw_config: dict[str, Any], overrides: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Resolve profile defaults, file settings and overrides into one dict."""
    layered = merge_config(overrides or {}, raw_config)
    profile = load_profile(layered.get("profile", "default"))
    return merge_config(layered, profile)


def config_from_overrides(
    directory: Path | None = None, overrides: dict[str, Any] | None = None
) -> ChunkscribeConfig:
    """Build a config from chunkscribe.yaml when present, else from profile defaults."""
    if directory is not None and (directory / CONFIG_FILENAME).exists():
        return load_config(directory, overrides)
    return ChunkscribeConfig(**resolve_settings({}, overrides))


def create_default_config(profile: str = "default") -> dict[str, Any]:
    """Create a default config for a new working directory."""
    defaults = {
        "profile": profile,
        "model": "whisper-1",
        "language": "en",
        "output_format": "vtt",
        "prompt": DEFAULT_PROMPT,
    }
    return merge_config(defaults, load_profile(profile))


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
