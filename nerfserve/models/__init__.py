"""SQLAlchemy ORM models for nerfserve."""

from nerfserve.models.base import Base
from nerfserve.models.user import User, UserScene
from nerfserve.models.scene import Scene, NerfOutput

__all__ = [
    "Base",
    "User",
    "UserScene",
    "Scene",
    "NerfOutput",
]
