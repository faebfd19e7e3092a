"""
chunkscribe.validation - Environment checks.

Validates that the FFmpeg toolchain is available before processing.
"""

from __future__ import annotations

import shutil
import subprocess

from chunkscribe.exceptions import DependencyError

INSTALL_HINT = "Install with: brew install ffmpeg (macOS) or apt install ffmpeg (Linux)"


def _tool_version(name: str) -> str:
    path = shutil.which(name)
    if not path:
        raise DependencyError(name, f"{name} not found in PATH", INSTALL_HINT)

    try:
        proc = subprocess.run(
            [path, "-version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        version_line = proc.stdout.split("\n")[0]
        return version_line.split()[2] if version_line else "unknown"
    except (subprocess.TimeoutExpired, IndexError):
        return "unknown"


def check_ffmpeg() -> dict[str, str]:
    """Check if FFmpeg and FFprobe are installed and get versions.

    Returns:
        Dict with 'ffmpeg_version' and 'ffprobe_version'

    Raises:
        DependencyError: If FFmpeg or FFprobe not found
    """
    return {
        "ffmpeg_version": _tool_version("ffmpeg"),
        "ffprobe_version": _tool_version("ffprobe"),
    }
