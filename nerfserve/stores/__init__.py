"""Database-backed stores for users, scenes and training outputs."""

from nerfserve.stores.users import UserManager
from nerfserve.stores.scenes import SceneManager

__all__ = ["UserManager", "SceneManager"]
