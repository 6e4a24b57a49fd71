"""Wire models for the scene generation API (/v1)."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# Media asset upload


class PrepareUploadRequest(BaseModel):
    file_name: str
    kind: str = "image"
    extension: str = "jpg"


class MediaAsset(BaseModel):
    id: str


class UploadInfo(BaseModel):
    upload_url: str
    upload_method: str = "PUT"
    required_headers: Dict[str, str] = Field(default_factory=dict)


class PrepareUploadResponse(BaseModel):
    media_asset: MediaAsset
    upload_info: UploadInfo


# Scene generation


class ImageContent(BaseModel):
    source: str = "media_asset"
    media_asset_id: str


class MultiImageEntry(BaseModel):
    azimuth: int
    content: ImageContent


class ScenePrompt(BaseModel):
    type: str = "multi-image"
    text_prompt: Optional[str] = None
    multi_image_prompt: List[MultiImageEntry] = Field(default_factory=list)


class SceneGenerateRequest(BaseModel):
    display_name: Optional[str] = None
    scene_prompt: ScenePrompt

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


# Operations


class OperationError(BaseModel):
    code: Optional[Union[int, str]] = None
    message: Optional[str] = None


class ProgressInfo(BaseModel):
    status: Optional[str] = None
    description: Optional[str] = None


class OperationMetadata(BaseModel):
    progress: Optional[ProgressInfo] = None
    scene_id: Optional[str] = None


class SpzUrls(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_res: Optional[str] = None
    medium: Optional[str] = Field(default=None, alias="500k")
    small: Optional[str] = Field(default=None, alias="100k")

    def preferred(self) -> Optional[str]:
        """Full resolution first, then 500k, then 100k; first non-empty wins."""
        for url in (self.full_res, self.medium, self.small):
            if url:
                return url
        return None


class SplatAssets(BaseModel):
    spz_urls: Optional[SpzUrls] = None


class SceneAssets(BaseModel):
    splats: Optional[SplatAssets] = None


class SceneData(BaseModel):
    id: str
    display_name: Optional[str] = None
    assets: Optional[SceneAssets] = None

    @property
    def spz_urls(self) -> Optional[SpzUrls]:
        if self.assets and self.assets.splats:
            return self.assets.splats.spz_urls
        return None


class SceneResponse(BaseModel):
    scene: Optional[SceneData] = None


class OperationResponse(BaseModel):
    operation_id: str
    done: bool = False
    error: Optional[OperationError] = None
    metadata: Optional[OperationMetadata] = None
    response: Optional[SceneResponse] = None


# Client-side records


@dataclass(frozen=True)
class RemoteAsset:
    """An uploaded frame; source_index is its position in the upload input."""
    asset_id: str
    source_index: int
    file_name: str
