"""Scene store: video reference, name, training config and output registry."""

from typing import Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from nerfserve.db import session_scope
from nerfserve.errors import NotFound
from nerfserve.logging_config import logger
from nerfserve.models.scene import NerfOutput, Scene
from nerfserve.schemas import Nerf, SceneSummary, TrainingConfig, Video


class SceneManager:
    """Each setter is its own transaction; there is no multi-write unit of work."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def _get_or_create(self, session: AsyncSession, scene_id: str) -> Scene:
        scene = await session.get(Scene, scene_id)
        if scene is None:
            scene = Scene(scene_id=scene_id)
            session.add(scene)
        return scene

    async def _get_scene(self, session: AsyncSession, scene_id: str, with_outputs: bool = False) -> Scene:
        stmt = select(Scene).where(Scene.scene_id == scene_id)
        if with_outputs:
            stmt = stmt.options(selectinload(Scene.outputs))
        result = await session.execute(stmt)
        scene = result.scalar_one_or_none()
        if scene is None:
            raise NotFound(f"Scene not found: {scene_id}")
        return scene

    async def set_video(self, scene_id: str, video: Video) -> None:
        async with session_scope(self.session_factory) as session:
            scene = await self._get_or_create(session, scene_id)
            scene.video_path = video.file_path
        logger.debug("Stored scene video", scene_id=scene_id, path=video.file_path)

    async def set_scene_name(self, scene_id: str, name: str) -> None:
        async with session_scope(self.session_factory) as session:
            scene = await self._get_or_create(session, scene_id)
            scene.name = name
        logger.debug("Stored scene name", scene_id=scene_id, name=name)

    async def set_training_config(self, scene_id: str, config: TrainingConfig) -> None:
        async with session_scope(self.session_factory) as session:
            scene = await self._get_or_create(session, scene_id)
            scene.training_config = config.model_dump()
        logger.debug("Stored training config", scene_id=scene_id)

    async def get_training_config(self, scene_id: str) -> TrainingConfig:
        async with session_scope(self.session_factory) as session:
            scene = await self._get_scene(session, scene_id)

        if not scene.training_config:
            raise NotFound(f"Training config not found for scene: {scene_id}")
        return TrainingConfig.model_validate(scene.training_config)

    async def get_nerf(self, scene_id: str) -> Nerf:
        async with session_scope(self.session_factory) as session:
            scene = await self._get_scene(session, scene_id, with_outputs=True)

        file_paths: Dict[str, Dict[str, str]] = {}
        for output in scene.outputs:
            file_paths.setdefault(output.output_type, {})[output.iteration] = output.file_path
        return Nerf(file_paths=file_paths)

    async def add_nerf_output(self, scene_id: str, output_type: str, iteration: str, file_path: str) -> None:
        """Register (or replace) the artifact for an output type and iteration."""
        async with session_scope(self.session_factory) as session:
            await self._get_scene(session, scene_id)
            await session.merge(NerfOutput(
                scene_id=scene_id,
                output_type=output_type,
                iteration=iteration,
                file_path=file_path,
            ))
        logger.info(
            "Registered training output",
            scene_id=scene_id,
            output_type=output_type,
            iteration=iteration,
        )

    async def get_scene_name(self, scene_id: str) -> Optional[str]:
        async with session_scope(self.session_factory) as session:
            scene = await self._get_scene(session, scene_id)
        return scene.name

    async def get_scene_summaries(self, scene_ids: List[str]) -> List[SceneSummary]:
        """Summaries for the given scenes, in the order given; unknown ids are skipped."""
        if not scene_ids:
            return []

        async with session_scope(self.session_factory) as session:
            result = await session.execute(select(Scene).where(Scene.scene_id.in_(scene_ids)))
            scenes = {scene.scene_id: scene for scene in result.scalars().all()}

        summaries = []
        for scene_id in scene_ids:
            scene = scenes.get(scene_id)
            if scene is None:
                continue
            output_types = []
            if scene.training_config:
                output_types = TrainingConfig.model_validate(scene.training_config).nerf_training_config.output_types
            summaries.append(SceneSummary(
                scene_id=scene.scene_id,
                name=scene.name,
                output_types=output_types,
                created_at=scene.created_at.isoformat() if scene.created_at else None,
            ))
        return summaries
