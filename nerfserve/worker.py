"""
Dramatiq actors run by the nerfserve worker process.

The trainer reports each saved output on the ``nerf-out`` queue; this worker
records it in the scene's output registry so the metadata and resource
endpoints can find it.

Run with:
    dramatiq nerfserve.worker
"""

import asyncio

import dramatiq
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from nerfserve.config import settings
from nerfserve.logging_config import logger
from nerfserve.queue import get_broker
from nerfserve.stores.scenes import SceneManager

redis_broker = get_broker()


async def record_output(
    session_factory: async_sessionmaker,
    scene_id: str,
    output_type: str,
    iteration: str,
    file_path: str,
) -> None:
    await SceneManager(session_factory).add_nerf_output(scene_id, output_type, iteration, file_path)


async def _record_with_fresh_engine(scene_id: str, output_type: str, iteration: str, file_path: str) -> None:
    # Each actor call runs its own event loop, so pooled connections can't be shared
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    try:
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        await record_output(session_factory, scene_id, output_type, iteration, file_path)
    finally:
        await engine.dispose()


@dramatiq.actor(
    actor_name="record_nerf_output",
    queue_name=settings.nerf_out_queue_name,
    broker=redis_broker,
    max_retries=3,
)
def record_nerf_output(scene_id: str, output_type: str, iteration, file_path: str):
    """Register one trainer output file for a scene."""
    logger.info(
        "Received training output",
        scene_id=scene_id,
        output_type=output_type,
        iteration=iteration,
    )
    asyncio.run(_record_with_fresh_engine(scene_id, output_type, str(iteration), file_path))
