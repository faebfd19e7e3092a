"""
chunkscribe.transcribe - Transcription service adapter.

Wraps the OpenAI transcription endpoint behind a single ``transcribe``
operation returning a cue track or a structured word/segment transcript.
"""

from __future__ import annotations
