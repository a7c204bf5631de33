"""Service layer wiring."""

from typing import Optional

from nerfserve.services.client import ClientService

_client_service: Optional[ClientService] = None


def get_client_service() -> ClientService:
    """Get or create the process-wide ClientService (for dependency injection)."""
    global _client_service
    if _client_service is None:
        from nerfserve.db import AsyncSessionLocal
        from nerfserve.queue import JobPublisher, get_broker
        from nerfserve.storage import VideoStorage
        from nerfserve.stores import SceneManager, UserManager

        _client_service = ClientService(
            scene_manager=SceneManager(AsyncSessionLocal),
            user_manager=UserManager(AsyncSessionLocal),
            publisher=JobPublisher(get_broker()),
            video_storage=VideoStorage(),
        )
    return _client_service


__all__ = ["ClientService", "get_client_service"]
