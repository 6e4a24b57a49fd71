"""
Capture + Generation Command Line

Replays captured turns into frame sets and sends frame sets through the
remote scene generation pipeline.
"""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from capture.replay import replay_capture
from capture.session import CaptureError, CaptureSession, export_frames
from utils.angles import azimuths, generate_target_angles
from utils.config import GenerationConfig
from utils.validation import validate_capture_dir, validate_heading_log
from .errors import APIError
from .orchestrator import (
    DirectoryArtifactStore,
    GenerationOrchestrator,
    GenerationResult,
    status_text,
)

console = Console()
app = typer.Typer(help="Orbit capture and scene generation")


def run_generation(
    frames: List[Path],
    config: GenerationConfig,
    output_dir: Path
) -> GenerationResult:
    """Run the orchestrated generation with a live progress bar."""
    orchestrator = GenerationOrchestrator(
        config=config,
        store=DirectoryArtifactStore(output_dir),
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(status_text(0.0), total=1.0)

        def on_progress(value: float):
            progress.update(task, completed=value, description=status_text(value))

        try:
            result = orchestrator.run(frames, on_progress=on_progress)
        except KeyboardInterrupt:
            orchestrator.cancel()
            raise

    console.print(Panel.fit(
        f"[bold green]Scene generated![/bold green]\n\n"
        f"Operation: {result.operation_id}\n"
        f"Scene: {result.scene_id}\n"
        f"Images: {len(result.asset_ids)}\n"
        f"Total time: {result.stats.get('total_duration_seconds', 0):.1f}s\n"
        f"Output: {result.artifact_path}",
        border_style="green"
    ))
    return result


@app.command()
def generate(
    frames_dir: Path = typer.Argument(..., help="Directory of exported capture_XX.jpg frames"),
    output_dir: Path = typer.Option(Path("./splats"), help="Where to store the downloaded splat"),
    api_key: Optional[str] = typer.Option(None, envvar="ORBIT_API_KEY", help="Scene API key"),
    prompt: Optional[str] = typer.Option(None, help="Text prompt for the scene"),
    timeout: Optional[float] = typer.Option(None, help="Polling timeout in seconds"),
    interval: Optional[float] = typer.Option(None, help="Polling interval in seconds"),
):
    """
    Generate a 3D scene from an exported frame directory.
    """
    config = GenerationConfig.from_env(
        api_key=api_key,
        prompt=prompt,
        polling_timeout=timeout,
        polling_interval=interval,
    )

    is_valid, info, errors = validate_capture_dir(frames_dir, min_frames=config.min_frames)
    if not is_valid:
        console.print("[red]Capture directory is not ready:[/red]")
        for error in errors:
            console.print(f"  [red]• {error}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Found {info['frame_count']} frames in {frames_dir}[/green]")

    try:
        run_generation(info["frames"], config, output_dir)
    except APIError as e:
        console.print(f"[bold red]Generation failed:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def capture(
    video_path: Path = typer.Argument(..., help="Video recorded during the turn"),
    log_path: Path = typer.Argument(..., help="Heading log JSON"),
    output_dir: Path = typer.Argument(..., help="Where to export capture_XX.jpg frames"),
    count: Optional[int] = typer.Option(
        None, help="Number of target angles (default: the log's target_count, else 18)"
    ),
    tolerance: float = typer.Option(8.0, help="Capture tolerance in degrees"),
    run_generate: bool = typer.Option(False, "--generate", help="Generate a scene after capture"),
):
    """
    Replay a recorded turn, export the captured frames and optionally generate.
    """
    is_valid, log, errors = validate_heading_log(log_path)
    if not is_valid:
        console.print(f"[bold red]Invalid heading log:[/bold red] {errors}")
        raise typer.Exit(1)

    if count is None:
        count = log.target_count
    config = GenerationConfig.from_env(target_count=count, tolerance=tolerance)
    session = CaptureSession(
        target_count=config.target_count,
        tolerance=config.tolerance,
        min_frames=config.min_frames,
    )
    try:
        session = replay_capture(video_path, log, session)
    except CaptureError as e:
        console.print(f"[bold red]Capture failed:[/bold red] {e}")
        raise typer.Exit(1)

    if not session.can_finish:
        console.print(f"[bold red]Not enough captures:[/bold red] "
                      f"{session.remaining_to_finish} more needed")
        raise typer.Exit(1)

    paths = export_frames(session.finalize(), output_dir, quality=config.export_quality)

    if run_generate:
        try:
            run_generation(paths, config, output_dir)
        except APIError as e:
            console.print(f"[bold red]Generation failed:[/bold red] {e}")
            raise typer.Exit(1)


@app.command()
def targets(
    start: float = typer.Option(0.0, help="Heading the turn starts from (degrees)"),
    count: int = typer.Option(18, help="Number of target angles"),
):
    """Print the target angles and submitted azimuths of a turn."""
    table = Table(title=f"{count} targets from {start:.1f}°")
    table.add_column("Index", justify="right")
    table.add_column("Heading", justify="right")
    table.add_column("Azimuth", justify="right")

    for i, (angle, azimuth) in enumerate(zip(generate_target_angles(start, count), azimuths(count))):
        table.add_row(f"{i:02d}", f"{angle:.1f}°", f"{azimuth}°")

    console.print(table)


@app.command("stages")
def list_stages():
    """List all pipeline stages."""
    stages = [
        ("1. Capture", "Angle-gated still capture during a 360° turn"),
        ("2. Upload", "Downscale, encode and upload each frame"),
        ("3. Create Job", "Submit a multi-image generation job"),
        ("4. Poll", "Wait for the job to finish"),
        ("5. Download", "Fetch the generated splat"),
    ]

    console.print("[bold]Pipeline Stages:[/bold]\n")
    for name, desc in stages:
        console.print(f"  [blue]{name}[/blue]: {desc}")


if __name__ == "__main__":
    app()
