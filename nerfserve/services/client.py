"""
Client-facing operations on users and scenes.

Scene submission writes to three stores in turn (filesystem, database,
queue) with no transaction spanning them:

1. Validate the file name and extension
2. Allocate the scene id
3. Store the video file
4. Store video reference, scene name and training config
5. Publish the job to the trainer queue
6. Attribute the scene to the submitting user

Each step commits on its own and nothing is rolled back when a later step
fails. The raised DownstreamError carries the scene id and the steps that
had already committed.
"""

import os
from contextlib import asynccontextmanager
from typing import List, Optional
from uuid import uuid4

from structlog.contextvars import bound_contextvars

from nerfserve import metrics
from nerfserve.errors import (
    AccessDenied,
    AuthenticationFailed,
    DownstreamError,
    NotFound,
    PersistenceError,
    ValidationError,
)
from nerfserve.logging_config import logger
from nerfserve.schemas import (
    LatestOutput,
    NerfMetadata,
    NerfTrainingConfig,
    ResourceSlice,
    SceneSummary,
    ScenePreview,
    TrainingConfig,
    Video,
    VideoUploadRequest,
)
from nerfserve.services.resources import chunk_range, parse_range, resource_info
from nerfserve.storage import file_size

VIDEO_EXTENSION = ".mp4"


def _iteration_key(iteration: str):
    # Numeric labels sort numerically, anything else after them lexically
    return (0, int(iteration), "") if iteration.isdecimal() else (1, 0, iteration)


class ClientService:
    """Entry point for every client operation.

    Args:
        scene_manager: Scene store (video, name, config, output registry)
        user_manager: User store (accounts, authorization relation)
        publisher: Queue publisher with ``publish_job``
        video_storage: Durable video storage with ``save_upload``
    """

    def __init__(self, scene_manager, user_manager, publisher, video_storage):
        self.scene_manager = scene_manager
        self.user_manager = user_manager
        self.publisher = publisher
        self.video_storage = video_storage

    async def verify_user_access(self, user_id: str, scene_id: str) -> None:
        """Raise AccessDenied unless the user may access the scene.

        A failed lookup is treated the same as an explicit refusal.
        """
        try:
            authorized = await self.user_manager.user_has_job_access(user_id, scene_id)
        except Exception as e:
            logger.warning("Access check failed", user_id=user_id, scene_id=scene_id, error=str(e))
            raise AccessDenied("User does not have access to this scene") from e

        if not authorized:
            logger.info("Access denied", user_id=user_id, scene_id=scene_id)
            raise AccessDenied("User does not have access to this scene")

    async def login_user(self, username: str, password: str) -> str:
        """Return the user's id if the credentials are valid."""
        try:
            user = await self.user_manager.get_user_by_username(username)
        except NotFound as e:
            raise AuthenticationFailed("Invalid credentials") from e

        user.check_password(password)
        return user.user_id

    async def register_user(self, username: str, password: str) -> None:
        await self.user_manager.generate_user(username, password)

    async def get_nerf_metadata(self, user_id: str, scene_id: str, output_type: str = "") -> NerfMetadata:
        """
        Describe every registered artifact of a scene in 1 MiB chunks.

        Args:
            user_id: Requesting user
            scene_id: Scene to describe
            output_type: Restrict to one output type (empty for all)

        Returns:
            Output type -> iteration -> ResourceInfo
        """
        await self.verify_user_access(user_id, scene_id)

        nerf = await self.scene_manager.get_nerf(scene_id)
        config = await self.scene_manager.get_training_config(scene_id)
        output_types = config.nerf_training_config.output_types

        if output_type and output_type not in output_types:
            raise NotFound(f"Output type not configured for scene: {output_type}")

        metadata = NerfMetadata()
        for ot in output_types:
            if output_type and output_type != ot:
                continue
            metadata.resources[ot] = {
                iteration: resource_info(path)
                for iteration, path in nerf.file_paths_for(ot).items()
            }

        return metadata

    @asynccontextmanager
    async def _submission_step(self, scene_id: str, committed: List[str], step: str):
        try:
            yield
        except DownstreamError as e:
            e.scene_id = scene_id
            e.committed_steps = tuple(committed)
            metrics.scene_submissions_total.labels(outcome=type(e).__name__).inc()
            if committed:
                metrics.scene_submissions_partial_total.labels(last_step=committed[-1]).inc()
                logger.error(
                    "Scene submission partially committed",
                    scene_id=scene_id,
                    failed_step=step,
                    committed_steps=list(committed),
                    error=e.message,
                )
            raise
        committed.append(step)

    async def handle_incoming_video(self, user_id: str, upload, request: VideoUploadRequest) -> str:
        """
        Store an uploaded video, record its config and queue it for training.

        Args:
            user_id: Submitting user
            upload: Uploaded file with ``filename`` and async ``read``
            request: Scene name and training parameters

        Returns:
            The new scene id, also the stem of the stored video file name

        Raises:
            ValidationError: Missing file name or extension other than .mp4
            StorageError: Video could not be written
            PersistenceError: A database write failed
            QueueError: The job could not be published
        """
        file_name = getattr(upload, "filename", None) or ""
        if not file_name:
            metrics.scene_submissions_total.labels(outcome="ValidationError").inc()
            raise ValidationError("File not received")

        if os.path.splitext(file_name)[1].lower() != VIDEO_EXTENSION:
            metrics.scene_submissions_total.labels(outcome="ValidationError").inc()
            raise ValidationError("Improper file extension")

        scene_id = str(uuid4())
        with bound_contextvars(scene_id=scene_id, user_id=user_id):
            return await self._run_submission(scene_id, user_id, upload, request)

    async def _run_submission(
        self, scene_id: str, user_id: str, upload, request: VideoUploadRequest
    ) -> str:
        committed: List[str] = []

        async with self._submission_step(scene_id, committed, "video_file"):
            video_path = await self.video_storage.save_upload(upload, scene_id)

        video = Video(file_path=video_path)
        training_config = TrainingConfig(
            nerf_training_config=NerfTrainingConfig(
                training_mode=request.training_mode,
                output_types=request.output_types,
                save_iterations=request.save_iterations,
                total_iterations=request.total_iterations,
            )
        )

        async with self._submission_step(scene_id, committed, "video"):
            await self.scene_manager.set_video(scene_id, video)
        async with self._submission_step(scene_id, committed, "scene_name"):
            await self.scene_manager.set_scene_name(scene_id, request.scene_name)
        async with self._submission_step(scene_id, committed, "training_config"):
            await self.scene_manager.set_training_config(scene_id, training_config)

        async with self._submission_step(scene_id, committed, "queued"):
            self.publisher.publish_job(scene_id, video, training_config)

        async with self._submission_step(scene_id, committed, "attributed"):
            try:
                user = await self.user_manager.get_user_by_id(user_id)
            except NotFound as e:
                raise PersistenceError(f"Submitting user not found: {user_id}") from e
            await self.user_manager.add_scene(user.user_id, scene_id)

        metrics.scene_submissions_total.labels(outcome="accepted").inc()
        logger.info("Scene submitted", scene_id=scene_id, user_id=user_id)
        return scene_id

    async def get_nerf_resource(
        self,
        user_id: str,
        scene_id: str,
        output_type: str,
        iteration: str,
        range_header: Optional[str] = None,
        chunk: Optional[int] = None,
    ) -> ResourceSlice:
        """
        Resolve the byte range of one artifact to stream.

        ``chunk`` selects a whole 1 MiB chunk and takes precedence over
        ``range_header``; with neither the whole file is selected.
        """
        await self.verify_user_access(user_id, scene_id)

        config = await self.scene_manager.get_training_config(scene_id)
        if output_type not in config.nerf_training_config.output_types:
            raise NotFound(f"Output type not configured for scene: {output_type}")

        nerf = await self.scene_manager.get_nerf(scene_id)
        path = nerf.file_paths_for(output_type).get(iteration)
        if path is None:
            raise NotFound(f"No {output_type} output for iteration {iteration}")

        size = file_size(path)
        if size is None:
            raise NotFound(f"Resource not available: {output_type}/{iteration}")

        if chunk is not None:
            start, end = chunk_range(chunk, size)
        else:
            start, end = parse_range(range_header, size)

        resource = ResourceSlice(path=path, start=start, end=end, size=size)
        metrics.resource_bytes_served_total.labels(output_type=output_type).inc(max(resource.length, 0))
        return resource

    async def get_user_history(self, user_id: str) -> List[SceneSummary]:
        """Scenes attributed to the user, oldest first."""
        user = await self.user_manager.get_user_by_id(user_id)
        return await self.scene_manager.get_scene_summaries(user.scene_ids)

    async def get_scene_preview(self, user_id: str, scene_id: str) -> ScenePreview:
        """Name, config and the newest registered output of each output type."""
        await self.verify_user_access(user_id, scene_id)

        name = await self.scene_manager.get_scene_name(scene_id)
        config = await self.scene_manager.get_training_config(scene_id)
        nerf = await self.scene_manager.get_nerf(scene_id)

        preview = ScenePreview(scene_id=scene_id, name=name, training_config=config)
        for ot in config.nerf_training_config.output_types:
            paths = nerf.file_paths_for(ot)
            if not paths:
                continue
            iteration = max(paths, key=_iteration_key)
            preview.latest[ot] = LatestOutput(iteration=iteration, resource=resource_info(paths[iteration]))
        return preview
