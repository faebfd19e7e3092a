"""
chunkscribe.cli - Typer CLI entry point.

Provides the init, plan, transcribe and stitch subcommands.
"""

from __future__ import annotations

import os
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from chunkscribe import __version__
from chunkscribe.config import (
    BUILTIN_PROFILES,
    CONFIG_FILENAME,
    ChunkscribeConfig,
    config_from_overrides,
    create_default_config,
    write_config,
)
from chunkscribe.exceptions import ChunkscribeError, DependencyError
from chunkscribe.logging import configure_logging
from chunkscribe.utils import format_duration

app = typer.Typer(
    name="chunkscribe",
    help="Long-form audio transcription.\n\n"
    "Splits recordings into overlapping segments, transcribes each with the "
    "OpenAI API, and stitches the results into one continuous transcript.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"chunkscribe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Chunkscribe - long-form audio transcription."""
    load_dotenv()
    configure_logging(verbose)


def _resolve_config(**overrides) -> ChunkscribeConfig:
    try:
        return config_from_overrides(Path.cwd(), overrides)
    except ValueError as e:
        console.print(f"[red]Error: Invalid configuration: {e}[/red]")
        raise typer.Exit(1)


@app.command("init")
def init_config(
    profile: str = typer.Option(
        "default",
        "--profile",
        "-p",
        help=f"Settings profile: {', '.join(BUILTIN_PROFILES)}",
    ),
    path: str = typer.Option(".", "--path", "-d", help="Directory to write the config in"),
) -> None:
    """Write a starter chunkscribe.yaml."""
    config_path = Path(path) / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[red]Error: '{config_path}' already exists[/red]")
        raise typer.Exit(1)

    try:
        write_config(create_default_config(profile), config_path)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Created {config_path} with profile '{profile}'")
    console.print("\nNext step: [cyan]chunkscribe transcribe <audio>[/cyan]")


@app.command("plan")
def plan(
    source: Path = typer.Argument(..., help="Audio or video file"),
    segment_length: float | None = typer.Option(
        None, "--segment-length", "-s", help="Segment length in seconds"
    ),
    overlap: float | None = typer.Option(None, "--overlap", "-o", help="Overlap in seconds"),
) -> None:
    """Show how a file would be split, without calling the service."""
    from chunkscribe.extract.audio import probe_duration
    from chunkscribe.segment.planner import plan_segments

    if not source.exists():
        console.print(f"[red]Error: File not found: {source}[/red]")
        raise typer.Exit(1)

    config = _resolve_config(segment_length=segment_length, overlap=overlap)

    try:
        duration = probe_duration(source)
        segments = plan_segments(duration, config.segment_length, config.overlap)
    except ChunkscribeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Segments for {source.name} ({format_duration(duration)})")
    table.add_column("#", style="cyan")
    table.add_column("Start", style="green")
    table.add_column("End", style="green")
    table.add_column("Length", style="yellow")

    for segment in segments:
        table.add_row(
            str(segment.index + 1),
            format_duration(segment.start),
            format_duration(segment.end),
            f"{segment.length:.1f}s",
        )

    console.print(table)


@app.command("transcribe")
def transcribe(
    input_path: Path = typer.Argument(..., help="Audio file or directory of audio files"),
    output_dir: Path = typer.Option(
        Path("transcripts"), "--output-dir", "-d", help="Directory for transcripts"
    ),
    output_format: str | None = typer.Option(
        None, "--format", "-f", help="Output format: vtt or json"
    ),
    model: str | None = typer.Option(None, "--model", "-m", help="Transcription model"),
    language: str | None = typer.Option(None, "--language", "-l", help="Language code"),
    prompt: str | None = typer.Option(None, "--prompt", help="Domain prompt for the service"),
    segment_length: float | None = typer.Option(
        None, "--segment-length", "-s", help="Segment length in seconds"
    ),
    overlap: float | None = typer.Option(None, "--overlap", "-o", help="Overlap in seconds"),
    force: bool = typer.Option(False, "--force", help="Re-transcribe existing transcripts"),
) -> None:
    """Transcribe audio into a stitched VTT or JSON transcript."""
    from chunkscribe.batch import transcribe_all
    from chunkscribe.validation import check_ffmpeg

    if not input_path.exists():
        console.print(f"[red]Error: Input not found: {input_path}[/red]")
        raise typer.Exit(1)

    config = _resolve_config(
        output_format=output_format,
        model=model,
        language=language,
        prompt=prompt,
        segment_length=segment_length,
        overlap=overlap,
    )

    if not os.environ.get("OPENAI_API_KEY"):
        console.print("[red]Error: OPENAI_API_KEY environment variable is not set[/red]")
        raise typer.Exit(1)

    try:
        check_ffmpeg()
    except DependencyError as e:
        console.print(f"[red]Error: {e}[/red]")
        if e.install_hint:
            console.print(f"[dim]{e.install_hint}[/dim]")
        raise typer.Exit(1)

    console.print(f"[cyan]Transcribing with {config.model} ({config.output_format})...[/cyan]")
    if config.prompt:
        console.print(f'[dim]Using prompt: "{config.prompt}"[/dim]')

    results = transcribe_all(
        input_path=input_path,
        output_dir=output_dir,
        config=config,
        force=force,
        console=console,
    )

    console.print(
        f"\n[green]✓[/green] Transcribed {results['transcribed']}, "
        f"skipped {results['skipped']}, failed {results['failed']}"
    )

    if results["failed"] > 0:
        raise typer.Exit(1)


@app.command("stitch")
def stitch_parts(
    parts: list[Path] = typer.Argument(..., help="Per-segment transcripts, in segment order"),
    output: Path = typer.Option(..., "--output", "-O", help="Stitched transcript path"),
    segment_length: float | None = typer.Option(
        None, "--segment-length", "-s", help="Segment length the parts were cut with"
    ),
    overlap: float | None = typer.Option(None, "--overlap", "-o", help="Overlap in seconds"),
    strategy: str | None = typer.Option(
        None, "--strategy", help="Offset strategy: clip or measured"
    ),
) -> None:
    """Stitch already transcribed segment files into one transcript."""
    from chunkscribe.formats.structured import parse_structured
    from chunkscribe.formats.vtt import parse_vtt
    from chunkscribe.io import read_text, write_text
    from chunkscribe.pipeline import render_transcript
    from chunkscribe.segment.planner import SegmentDescriptor
    from chunkscribe.stitch.merge import SegmentResult, stitch

    kind = "json" if parts[0].suffix.lower() == ".json" else "vtt"
    config = _resolve_config(
        segment_length=segment_length,
        overlap=overlap,
        stitch_strategy=strategy,
        output_format=kind,
    )
    stride = config.segment_length - config.overlap

    try:
        results = []
        for index, part in enumerate(parts):
            raw = read_text(part)
            payload = parse_structured(raw) if kind == "json" else parse_vtt(raw)
            descriptor = SegmentDescriptor(
                index=index, start=index * stride, length=config.segment_length
            )
            results.append(SegmentResult(descriptor=descriptor, kind=kind, payload=payload))

        transcript = stitch(
            results,
            overlap=config.overlap,
            tolerance=config.stitch_tolerance,
            strategy=config.stitch_strategy,
        )
    except (FileNotFoundError, ChunkscribeError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    write_text(output, render_transcript(transcript, kind))
    console.print(f"[green]✓[/green] Stitched {len(parts)} part(s) into {output}")
