"""
chunkscribe.formats - Transcript payload formats.

WebVTT cue tracks and structured (verbose JSON) transcripts, plus the
timestamp codec they share.
"""

from __future__ import annotations
