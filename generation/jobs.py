"""
Generation Job Stage

Builds the multi-image scene generation request from uploaded assets and
submits it, returning the remote operation id.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from rich.console import Console

from utils.angles import azimuth_for_index
from utils.config import DEFAULT_PROMPT
from .client import SceneApiClient
from .errors import NoDataError
from .models import (
    ImageContent,
    MultiImageEntry,
    RemoteAsset,
    ScenePrompt,
    SceneGenerateRequest,
)

console = Console()

DEFAULT_DISPLAY_NAME = "Orbit Capture"


def build_multi_image_prompt(
    assets: Sequence[RemoteAsset],
    frame_count: int
) -> List[MultiImageEntry]:
    """
    One entry per asset with azimuth round(source_index * 360 / frame_count).

    Assets arrive in target-index order, so azimuths are evenly spaced and
    match the physical turn.
    """
    return [
        MultiImageEntry(
            azimuth=azimuth_for_index(asset.source_index, frame_count),
            content=ImageContent(source="media_asset", media_asset_id=asset.asset_id),
        )
        for asset in assets
    ]


def build_generate_request(
    assets: Sequence[RemoteAsset],
    frame_count: int,
    prompt: Optional[str] = DEFAULT_PROMPT,
    display_name: Optional[str] = DEFAULT_DISPLAY_NAME
) -> SceneGenerateRequest:
    if not assets:
        raise NoDataError("No uploaded assets to generate from.")
    if frame_count < len(assets):
        raise ValueError(f"Frame count {frame_count} is smaller than asset count {len(assets)}")

    return SceneGenerateRequest(
        display_name=display_name,
        scene_prompt=ScenePrompt(
            type="multi-image",
            text_prompt=prompt or None,
            multi_image_prompt=build_multi_image_prompt(assets, frame_count),
        ),
    )


@dataclass
class GenerationPipeline:
    """Submits one multi-image generation job."""
    client: SceneApiClient
    display_name: Optional[str] = DEFAULT_DISPLAY_NAME

    def create_job(
        self,
        assets: Sequence[RemoteAsset],
        frame_count: int,
        prompt: Optional[str] = DEFAULT_PROMPT
    ) -> str:
        """Submit the job and return its operation id."""
        request = build_generate_request(assets, frame_count, prompt, self.display_name)
        azimuth_list = [e.azimuth for e in request.scene_prompt.multi_image_prompt]

        console.print(f"[blue]Creating generation job ({len(assets)} images)...[/blue]")
        console.print(f"  [dim]Azimuths: {azimuth_list}[/dim]")

        operation = self.client.generate_scene(request)

        console.print(f"[green]Job created: {operation.operation_id}[/green]")
        return operation.operation_id
