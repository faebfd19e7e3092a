"""
chunkscribe.segment - Segment planning.

Splits a recording's duration into overlapping segment windows that are
each small enough for a single transcription request.
"""

from __future__ import annotations
