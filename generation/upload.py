"""
Upload Pipeline Stage

Downscales and re-encodes each captured frame, then runs the two-step
upload (prepare + put) to obtain one remote media asset per frame.
Frames are uploaded one at a time, in input order.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from rich.console import Console

from utils.imaging import ImageDecodeError, prepare_upload_image
from .cancel import CancelToken
from .client import SceneApiClient
from .errors import NoDataError
from .models import RemoteAsset

console = Console()

ProgressCallback = Callable[[float], None]

# Share of the overall run covered by the upload stage
UPLOAD_PROGRESS_START = 0.02
UPLOAD_PROGRESS_END = 0.15


def upload_progress(processed: int, total: int) -> float:
    """Progress after `processed` of `total` frames, scaled into [0.02, 0.15]."""
    if total <= 0:
        return UPLOAD_PROGRESS_START
    span = UPLOAD_PROGRESS_END - UPLOAD_PROGRESS_START
    return UPLOAD_PROGRESS_START + (processed / total) * span


def upload_file_name(index: int) -> str:
    return f"capture_{index:02d}.jpg"


@dataclass
class UploadPipeline:
    """Sequential two-step uploader."""
    client: SceneApiClient
    max_dimension: int = 1024
    quality: int = 80
    cancel_token: Optional[CancelToken] = None

    def upload(
        self,
        frames: Sequence[Path],
        on_progress: Optional[ProgressCallback] = None
    ) -> List[RemoteAsset]:
        """
        Upload frames and return their remote assets in input order.

        Callers pass frames already sorted by target index. A frame that
        cannot be read from disk is skipped with a warning; the remaining
        assets keep their input position in `source_index`.

        Raises:
            NoDataError: if no frame could be uploaded
        """
        total = len(frames)
        assets: List[RemoteAsset] = []
        skipped = 0

        console.print(f"[blue]Uploading {total} frames...[/blue]")

        for index, path in enumerate(frames):
            if self.cancel_token is not None:
                self.cancel_token.raise_if_cancelled()

            try:
                data = prepare_upload_image(Path(path), self.max_dimension, self.quality)
            except ImageDecodeError as e:
                skipped += 1
                console.print(f"[yellow]Skipping unreadable frame {path}: {e}[/yellow]")
                continue

            file_name = upload_file_name(index)
            prepared = self.client.prepare_upload(file_name)
            self.client.upload_to_signed_url(prepared.upload_info, data)

            assets.append(RemoteAsset(
                asset_id=prepared.media_asset.id,
                source_index=index,
                file_name=file_name,
            ))
            console.print(f"  [dim]{file_name} -> {prepared.media_asset.id} ({len(data) / 1024:.0f} KB)[/dim]")

            if on_progress is not None:
                on_progress(upload_progress(index + 1, total))

        if not assets:
            raise NoDataError("No frames could be uploaded.")

        console.print(f"[green]Uploaded {len(assets)} frames[/green]")
        if skipped > 0:
            console.print(f"[yellow]Skipped {skipped} unreadable frames[/yellow]")

        return assets
