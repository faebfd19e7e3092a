"""
chunkscribe.stitch - Merge per-segment results into one transcript.
"""

from __future__ import annotations
