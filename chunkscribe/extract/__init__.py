"""
chunkscribe.extract - FFmpeg audio probing and clip extraction.

Probes recording duration and cuts planned segment windows into temporary
clips for upload.
"""

from __future__ import annotations
