"""
Generation Orchestrator

Runs the full remote generation for one capture session:
upload all frames -> create job -> poll -> download artifact.

Stages run strictly in sequence and report into a single progress callback
whose values never decrease. One orchestrator belongs to one capture
session; a second concurrent `run` is rejected.
"""

import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlparse

from rich.console import Console

from utils.config import GenerationConfig
from .cancel import CancelToken
from .client import SceneApiClient
from .errors import GenerationInProgressError, InvalidAPIKeyError, NoDataError
from .jobs import GenerationPipeline
from .models import SceneData
from .polling import PollingEngine
from .upload import UPLOAD_PROGRESS_END, UPLOAD_PROGRESS_START, UploadPipeline

console = Console()

ProgressCallback = Callable[[float], None]

DOWNLOAD_PROGRESS = 0.9
_UNSET = object()


class ProgressReporter:
    """Forwards progress to a callback, never letting it go backwards."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.value = 0.0

    def __call__(self, progress: float) -> None:
        self.value = min(1.0, max(self.value, progress))
        if self.callback is not None:
            self.callback(self.value)


def status_text(progress: float) -> str:
    """Human-readable status band for a progress value."""
    if progress < 0.1:
        return "Preparing images..."
    if progress < 0.2:
        return "Uploading to the API..."
    if progress < 0.5:
        return "Generating 3D scene..."
    if progress < 0.8:
        return "Optimizing 3D scene..."
    if progress < 0.95:
        return "Downloading file..."
    return "Finishing..."


def select_artifact_url(scene: SceneData) -> str:
    """Pick full_res, then 500k, then 100k; the first non-empty URL wins."""
    urls = scene.spz_urls
    url = urls.preferred() if urls is not None else None
    if not url:
        raise NoDataError("Completed scene has no downloadable splat URL.")
    return url


class DirectoryArtifactStore:
    """Saves downloaded artifacts as splat_<uuid>.<ext> in a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def save(self, content: bytes, url: str) -> Path:
        suffix = PurePosixPath(urlparse(url).path).suffix.lower()
        if suffix not in (".spz", ".ply"):
            suffix = ".spz"

        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"splat_{uuid.uuid4()}{suffix}"
        path.write_bytes(content)
        return path


@dataclass(frozen=True)
class StageRecord:
    """Wall time and outputs of one finished stage."""
    name: str
    duration_seconds: float
    details: Dict[str, Any]


class StageTimer:
    """Records each stage of a run as it finishes."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self.clock = clock
        self.started_at = clock()
        self.records: List[StageRecord] = []

    @contextmanager
    def stage(self, name: str, title: str):
        """Print the stage header and time the block; the yielded dict collects details."""
        console.print(f"\n[bold]{title}[/bold]")
        details: Dict[str, Any] = {}
        start = self.clock()
        yield details
        self.records.append(StageRecord(name, self.clock() - start, details))

    def summary(self) -> Dict[str, Any]:
        return {
            "total_duration_seconds": self.clock() - self.started_at,
            "stages": {
                r.name: {"duration_seconds": r.duration_seconds, **r.details}
                for r in self.records
            },
        }


@dataclass
class GenerationResult:
    """Outcome of a successful run."""
    artifact_url: str
    operation_id: str
    asset_ids: List[str]
    scene_id: str
    artifact_path: Optional[Path] = None
    artifact_size: int = 0
    stats: Dict = field(default_factory=dict)


class GenerationOrchestrator:
    """Composes upload, job creation, polling and download into one run."""

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        http_session: Optional[Any] = None,
        store: Optional[DirectoryArtifactStore] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.config = config or GenerationConfig()
        self.http_session = http_session
        self.store = store
        self.clock = clock
        self.sleep = sleep
        self._run_lock = threading.Lock()
        self._token: Optional[CancelToken] = None

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def cancel(self) -> None:
        """Abort the active run, if any."""
        token = self._token
        if token is not None:
            console.print("[yellow]Cancelling generation...[/yellow]")
            token.cancel()

    def run(
        self,
        frames: Sequence[Path],
        api_key: Optional[str] = None,
        prompt: Any = _UNSET,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationResult:
        """
        Generate a scene from frames sorted by target index.

        Args:
            frames: Local frame files in target-index order
            api_key: Overrides the configured API key
            prompt: Overrides the configured text prompt (None for no prompt)
            on_progress: Receives non-decreasing progress values ending at 1.0

        Returns:
            GenerationResult with the artifact URL and stored path

        Raises:
            GenerationInProgressError: another run is active on this orchestrator
            APIError: any failure of the run
        """
        if not self._run_lock.acquire(blocking=False):
            raise GenerationInProgressError("A generation run is already in progress")

        token = CancelToken()
        self._token = token
        client = None
        try:
            if not frames:
                raise NoDataError("No frames to upload.")
            key = (api_key if api_key is not None else self.config.api_key).strip()
            if not key:
                raise InvalidAPIKeyError()

            text_prompt = self.config.prompt if prompt is _UNSET else prompt
            client = SceneApiClient(
                api_key=key,
                base_url=self.config.base_url,
                session=self.http_session,
                request_timeout=self.config.request_timeout,
            )
            client.attach(token)
            return self._run_stages(client, token, list(frames), text_prompt, ProgressReporter(on_progress))
        finally:
            if client is not None and self.http_session is None:
                client.close()
            self._token = None
            self._run_lock.release()

    def _run_stages(
        self,
        client: SceneApiClient,
        token: CancelToken,
        frames: List[Path],
        prompt: Optional[str],
        report: ProgressReporter,
    ) -> GenerationResult:
        timer = StageTimer()

        with timer.stage("upload", "Stage 1: Upload Frames") as info:
            report(UPLOAD_PROGRESS_START)
            uploader = UploadPipeline(
                client=client,
                max_dimension=self.config.max_dimension,
                quality=self.config.jpeg_quality,
                cancel_token=token,
            )
            assets = uploader.upload(frames, report)
            info.update(frame_count=len(frames), asset_count=len(assets))

        token.raise_if_cancelled()
        with timer.stage("create_job", "Stage 2: Create Generation Job") as info:
            report(UPLOAD_PROGRESS_END)
            jobs = GenerationPipeline(client=client, display_name=self.config.display_name)
            operation_id = jobs.create_job(assets, len(frames), prompt)
            info["operation_id"] = operation_id

        token.raise_if_cancelled()
        with timer.stage("poll", "Stage 3: Wait For Scene") as info:
            poller = PollingEngine(
                client=client,
                interval=self.config.polling_interval,
                timeout=self.config.polling_timeout,
                cancel_token=token,
                clock=self.clock,
                sleep=self.sleep,
            )
            scene = poller.await_job(operation_id, report)
            info["scene_id"] = scene.id

        token.raise_if_cancelled()
        with timer.stage("download", "Stage 4: Download Artifact") as info:
            report(DOWNLOAD_PROGRESS)
            url = select_artifact_url(scene)
            content = client.download(url)
            artifact_path = self.store.save(content, url) if self.store is not None else None
            info["size_bytes"] = len(content)

        console.print(f"[green]Downloaded {len(content) / (1024 * 1024):.1f} MB[/green]")
        if artifact_path is not None:
            console.print(f"[green]Saved to {artifact_path}[/green]")

        report(1.0)

        return GenerationResult(
            artifact_url=url,
            operation_id=operation_id,
            asset_ids=[a.asset_id for a in assets],
            scene_id=scene.id,
            artifact_path=artifact_path,
            artifact_size=len(content),
            stats=timer.summary(),
        )
