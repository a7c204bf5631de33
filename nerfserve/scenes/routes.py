"""Scene submission and training output routes."""

from typing import List, Optional

import pydantic
from fastapi import APIRouter, Depends, File, Form, Header, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from nerfserve.auth.middleware import AuthUser, get_current_user
from nerfserve.errors import ValidationError
from nerfserve.logging_config import logger
from nerfserve.schemas import NerfMetadata, SceneSummary, ScenePreview, VideoUploadRequest
from nerfserve.services import ClientService, get_client_service
from nerfserve.services.resources import CHUNK_SIZE
from nerfserve.storage import read_range

router = APIRouter()


class SceneCreatedResponse(BaseModel):
    """Response for an accepted scene submission."""
    id: str


class SceneHistoryResponse(BaseModel):
    scenes: List[SceneSummary]


@router.post("", response_model=SceneCreatedResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_video(
    file: UploadFile = File(...),
    scene_name: str = Form(""),
    training_mode: str = Form("gaussian"),
    output_types: List[str] = Form(...),
    save_iterations: List[int] = Form([]),
    total_iterations: int = Form(...),
    user: AuthUser = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
) -> SceneCreatedResponse:
    """
    Upload a video and queue it for NeRF training.

    This endpoint:
    1. Validates the file (.mp4)
    2. Stores the video under a fresh scene id
    3. Records the scene name and training config
    4. Publishes the job to the trainer queue
    5. Grants the uploader access to the scene

    Processing happens asynchronously; poll the metadata endpoint for outputs.
    """
    try:
        request = VideoUploadRequest(
            scene_name=scene_name,
            training_mode=training_mode,
            output_types=output_types,
            save_iterations=save_iterations,
            total_iterations=total_iterations,
        )
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid training parameters: {e.error_count()} error(s)") from e

    try:
        scene_id = await service.handle_incoming_video(user.user_id, file, request)
    finally:
        await file.close()

    return SceneCreatedResponse(id=scene_id)


@router.get("", response_model=SceneHistoryResponse)
async def get_history(
    user: AuthUser = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
) -> SceneHistoryResponse:
    """List every scene the user has submitted."""
    scenes = await service.get_user_history(user.user_id)
    return SceneHistoryResponse(scenes=scenes)


@router.get(
    "/{scene_id}/metadata",
    response_model=NerfMetadata,
    response_model_exclude_none=True,
)
async def get_metadata(
    scene_id: str,
    output_type: str = Query("", description="Restrict to one output type"),
    user: AuthUser = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
) -> NerfMetadata:
    """
    Chunk metadata for each registered training output.

    Returns output type -> iteration -> {exists, size, chunks, last_chunk_size},
    with sizes omitted for outputs whose file is missing.
    """
    return await service.get_nerf_metadata(user.user_id, scene_id, output_type)


@router.get("/{scene_id}/preview", response_model=ScenePreview, response_model_exclude_none=True)
async def get_preview(
    scene_id: str,
    user: AuthUser = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
) -> ScenePreview:
    """Scene name, training config and latest output per output type."""
    return await service.get_scene_preview(user.user_id, scene_id)


@router.get("/{scene_id}/resources/{output_type}/{iteration}")
async def get_resource(
    scene_id: str,
    output_type: str,
    iteration: str,
    chunk: Optional[int] = Query(None, ge=0, description="Chunk index (1 MiB chunks)"),
    range_header: Optional[str] = Header(None, alias="Range"),
    user: AuthUser = Depends(get_current_user),
    service: ClientService = Depends(get_client_service),
) -> StreamingResponse:
    """
    Stream one training output, whole or in part.

    ``chunk`` selects one chunk as reported by the metadata endpoint;
    otherwise a single ``Range: bytes=`` header is honoured.
    """
    resource = await service.get_nerf_resource(
        user.user_id,
        scene_id,
        output_type,
        iteration,
        range_header=range_header,
        chunk=chunk,
    )

    headers = {
        "Accept-Ranges": "bytes",
        "Content-Length": str(max(resource.length, 0)),
    }
    status_code = status.HTTP_200_OK
    if resource.partial:
        status_code = status.HTTP_206_PARTIAL_CONTENT
        headers["Content-Range"] = f"bytes {resource.start}-{resource.end}/{resource.size}"

    logger.debug(
        "Streaming resource",
        scene_id=scene_id,
        output_type=output_type,
        iteration=iteration,
        start=resource.start,
        end=resource.end,
    )

    return StreamingResponse(
        read_range(resource.path, resource.start, resource.end, CHUNK_SIZE),
        status_code=status_code,
        media_type="application/octet-stream",
        headers=headers,
    )
