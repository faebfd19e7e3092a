"""
chunkscribe.batch - Transcribe every audio file under a directory.

Mirrors the input tree into the output directory, one transcript per audio
file, skipping files that already have a transcript unless forced.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from chunkscribe.config import ChunkscribeConfig
from chunkscribe.exceptions import ChunkscribeError
from chunkscribe.io import write_text
from chunkscribe.logging import logger
from chunkscribe.pipeline import transcribe_file

AUDIO_EXTENSIONS = {".mp3", ".wav", ".m4a", ".ogg", ".flac"}

OUTPUT_EXTENSIONS = {"vtt": ".vtt", "json": ".json"}


def collect_audio_files(path: Path) -> list[Path]:
    """Collect audio files from a file or directory (recursive, sorted).

    Raises:
        FileNotFoundError: If ``path`` does not exist
    """
    if not path.exists():
        raise FileNotFoundError(f"Input path not found: {path}")
    if path.is_file():
        return [path]
    return sorted(
        p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in AUDIO_EXTENSIONS
    )


def output_path_for(source: Path, input_root: Path, output_dir: Path, output_format: str) -> Path:
    """Map a source file to its transcript path, preserving the relative layout."""
    relative = source.relative_to(input_root) if input_root.is_dir() else Path(source.name)
    return (output_dir / relative).with_suffix(OUTPUT_EXTENSIONS[output_format])


def transcribe_all(
    input_path: Path,
    output_dir: Path,
    config: ChunkscribeConfig,
    force: bool = False,
    transcribe: Callable[[Path], str] | None = None,
    console=None,
) -> dict[str, Any]:
    """Transcribe every audio file under ``input_path``.

    Args:
        input_path: Audio file or directory
        output_dir: Directory for transcripts
        config: Resolved configuration
        force: Re-transcribe files that already have a transcript
        transcribe: Callable returning rendered transcript text for a file
            (defaults to the OpenAI pipeline)
        console: Optional rich console for output

    Returns:
        Dict with transcription summary
    """
    from rich.table import Table

    if transcribe is None:

        def transcribe(source: Path) -> str:
            return transcribe_file(source, config, console=console)

    results: dict[str, Any] = {
        "transcribed": 0,
        "skipped": 0,
        "failed": 0,
        "errors": [],
    }

    table = Table(title="Transcription")
    table.add_column("File", style="cyan")
    table.add_column("Output", style="green")
    table.add_column("Status", style="yellow")

    for source in collect_audio_files(input_path):
        output_path = output_path_for(source, input_path, output_dir, config.output_format)

        if output_path.exists() and not force:
            table.add_row(source.name, str(output_path), "[dim]Skipped (already transcribed)[/dim]")
            results["skipped"] += 1
            continue

        try:
            if console:
                console.print(f"\n[cyan]Transcribing {source.name}...[/cyan]")

            write_text(output_path, transcribe(source))

            table.add_row(source.name, str(output_path), "[green]✓ Transcribed[/green]")
            results["transcribed"] += 1

        except ChunkscribeError as e:
            logger.error("Failed to transcribe %s: %s", source, e)
            table.add_row(source.name, "-", f"[red]Error: {e}[/red]")
            results["failed"] += 1
            results["errors"].append({"file": str(source), "error": str(e)})

    if console:
        console.print(table)

    return results
