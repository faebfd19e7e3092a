"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from chunkscribe.config import ChunkscribeConfig


@pytest.fixture
def tmp_workdir(tmp_path: Path) -> Path:
    """Create a temporary working directory with a chunkscribe.yaml."""
    workdir = tmp_path / "work"
    workdir.mkdir()
    config = {"profile": "default", "output_format": "vtt", "segment_length": 300.0}
    with open(workdir / "chunkscribe.yaml", "w") as f:
        yaml.dump(config, f)
    return workdir


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    """A stand-in media file larger than the tiny upload limit used in tests."""
    path = tmp_path / "lecture.mp3"
    path.write_bytes(b"\x00" * 4096)
    return path


@pytest.fixture
def small_upload_config() -> ChunkscribeConfig:
    """600s segments, 20s overlap and a ~1KB upload limit."""
    return ChunkscribeConfig(
        segment_length=600.0,
        overlap=20.0,
        max_upload_mb=0.001,
        retry_delay=2.0,
        output_format="vtt",
    )


@pytest.fixture
def sample_vtt() -> str:
    """Return a WebVTT document as the service sends it."""
    return (
        "WEBVTT\n"
        "\n"
        "00:00:00.000 --> 00:00:04.500\n"
        "Welcome back to the course.\n"
        "\n"
        "00:00:04.500 --> 00:00:09.250\n"
        "Today we look at Nuxt\n"
        "server routes.\n"
        "\n"
        "00:00:09.250 --> 00:00:12.000\n"
        "Let's get started.\n"
    )


@pytest.fixture
def sample_verbose_json() -> dict:
    """Return a verbose_json payload as the service sends it."""
    return {
        "task": "transcribe",
        "language": "english",
        "duration": 6.5,
        "text": "Welcome back. Today we look at Nuxt.",
        "words": [
            {"word": "Welcome", "start": 0.0, "end": 0.6},
            {"word": "back.", "start": 0.6, "end": 1.2},
            {"word": "Today", "start": 2.0, "end": 2.4},
            {"word": "we", "start": 2.4, "end": 2.6},
            {"word": "look", "start": 2.6, "end": 2.9},
            {"word": "at", "start": 2.9, "end": 3.0},
            {"word": "Nuxt.", "start": 3.0, "end": 3.6},
        ],
        "segments": [
            {"id": 0, "seek": 0, "start": 0.0, "end": 1.2, "text": " Welcome back."},
            {"id": 1, "seek": 0, "start": 2.0, "end": 3.6, "text": " Today we look at Nuxt."},
        ],
    }
