"""
Chunkscribe - long-form audio transcription by overlapping segments.

Splits long recordings into overlapping clips, transcribes each clip with
the OpenAI transcription API while carrying context across cuts, and
stitches the results back into one continuous transcript: probe →
segment planning → clip extraction → transcription → stitching.
"""

__version__ = "0.1.0"
