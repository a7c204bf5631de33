"""Domain value objects passed between the stores, the service and the routes."""

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class Video(BaseModel):
    """Uploaded source video."""
    file_path: str


class NerfTrainingConfig(BaseModel):
    """Parameters requested for the NeRF training stage."""
    training_mode: Literal["tensorf", "gaussian"] = "gaussian"
    output_types: List[str] = Field(..., min_length=1, description="Requested output types")
    save_iterations: List[int] = Field(default_factory=list)
    total_iterations: int = Field(..., ge=1)


class TrainingConfig(BaseModel):
    nerf_training_config: NerfTrainingConfig


class Nerf(BaseModel):
    """Registry of artifacts: output type -> iteration label -> file path."""
    file_paths: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    def file_paths_for(self, output_type: str) -> Dict[str, str]:
        return self.file_paths.get(output_type, {})


class ResourceInfo(BaseModel):
    """Chunking metadata for one artifact.

    Only ``exists`` is set for a missing artifact; the remaining fields are
    dropped from responses in that case.
    """
    exists: bool
    size: Optional[int] = None
    chunks: Optional[int] = None
    last_chunk_size: Optional[int] = None


class NerfMetadata(BaseModel):
    resources: Dict[str, Dict[str, ResourceInfo]] = Field(default_factory=dict)


class VideoUploadRequest(BaseModel):
    """Form fields accompanying an uploaded video."""
    scene_name: str = Field("", max_length=255)
    training_mode: Literal["tensorf", "gaussian"] = "gaussian"
    output_types: List[str] = Field(..., min_length=1)
    save_iterations: List[int] = Field(default_factory=list)
    total_iterations: int = Field(..., ge=1)


class SceneSummary(BaseModel):
    scene_id: str
    name: Optional[str] = None
    output_types: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None


class LatestOutput(BaseModel):
    iteration: str
    resource: ResourceInfo


class ScenePreview(BaseModel):
    """Latest registered output per output type, with its chunk metadata."""
    scene_id: str
    name: Optional[str] = None
    training_config: Optional[TrainingConfig] = None
    latest: Dict[str, LatestOutput] = Field(default_factory=dict)


class ResourceSlice(BaseModel):
    """Inclusive byte range [start, end] of an artifact of ``size`` bytes."""
    path: str
    start: int
    end: int
    size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def partial(self) -> bool:
        return self.start > 0 or self.end < self.size - 1
