"""Dramatiq broker setup and the structure-from-motion job publisher."""

from typing import Optional

import dramatiq
from dramatiq.brokers.redis import RedisBroker

from nerfserve.config import settings
from nerfserve.errors import QueueError
from nerfserve.logging_config import logger
from nerfserve.schemas import TrainingConfig, Video

_broker: Optional[dramatiq.Broker] = None


def get_broker() -> dramatiq.Broker:
    """Get or create the Redis broker and make it the global dramatiq broker."""
    global _broker
    if _broker is None:
        _broker = RedisBroker(url=settings.redis_url)
        dramatiq.set_broker(_broker)
    return _broker


class JobPublisher:
    """Sends scene jobs to the trainer queue.

    The actor is a stub: the implementation lives in the trainer, this side
    only needs the actor and queue names to enqueue messages.
    """

    def __init__(
        self,
        broker: dramatiq.Broker,
        queue_name: Optional[str] = None,
        actor_name: Optional[str] = None,
    ):
        self.broker = broker
        self.queue_name = queue_name or settings.sfm_queue_name

        def process_sfm_job_stub(scene_id: str, video: dict, config: dict):
            """Stub - actual implementation is in the trainer."""

        self.actor = dramatiq.actor(
            process_sfm_job_stub,
            actor_name=actor_name or settings.sfm_actor_name,
            queue_name=self.queue_name,
            broker=broker,
        )

    def publish_job(self, scene_id: str, video: Video, config: TrainingConfig) -> None:
        """
        Enqueue a job-start message. Fire-and-forget; no reply is awaited.

        Raises:
            QueueError: If the broker rejects the message
        """
        try:
            message = self.actor.send(scene_id, video.model_dump(), config.model_dump())
        except Exception as e:
            logger.error(
                "Failed to queue scene processing task",
                scene_id=scene_id,
                queue=self.queue_name,
                error=str(e),
            )
            raise QueueError(f"Failed to publish job: {e}") from e

        logger.info(
            "Sent scene processing task to queue",
            scene_id=scene_id,
            queue=self.queue_name,
            message_id=message.message_id,
        )
