"""User store: accounts and the user/scene authorization relation."""

from uuid import uuid4
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from nerfserve.auth.crypto import hash_password
from nerfserve.db import session_scope
from nerfserve.errors import NotFound, UsernameTaken
from nerfserve.logging_config import logger
from nerfserve.models.user import User, UserScene


class UserManager:
    """Reads and writes users through short-lived async sessions."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_user_by_username(self, username: str) -> User:
        async with session_scope(self.session_factory) as session:
            stmt = (
                select(User)
                .options(selectinload(User.scene_links))
                .where(User.username == username)
            )
            result = await session.execute(stmt)
            user = result.scalar_one_or_none()

        if user is None:
            raise NotFound(f"User not found: {username}")
        return user

    async def get_user_by_id(self, user_id: str) -> User:
        async with session_scope(self.session_factory) as session:
            stmt = (
                select(User)
                .options(selectinload(User.scene_links))
                .where(User.user_id == user_id)
            )
            result = await session.execute(stmt)
            user = result.scalar_one_or_none()

        if user is None:
            raise NotFound(f"User not found: {user_id}")
        return user

    async def generate_user(self, username: str, password: str) -> User:
        """Create a user with a hashed password.

        Raises:
            UsernameTaken: If the username already exists
        """
        async with session_scope(self.session_factory) as session:
            existing = await session.execute(select(User.user_id).where(User.username == username))
            if existing.scalar_one_or_none() is not None:
                raise UsernameTaken(f"Username already taken: {username}")

            user = User(
                user_id=str(uuid4()),
                username=username,
                password_hash=hash_password(password),
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                # Lost a race with a concurrent registration
                raise UsernameTaken(f"Username already taken: {username}") from e

        logger.info("User created", user_id=user.user_id, username=username)
        return user

    async def add_scene(self, user_id: str, scene_id: str) -> None:
        """Grant user access to a scene by inserting one edge row."""
        async with session_scope(self.session_factory) as session:
            session.add(UserScene(user_id=user_id, scene_id=scene_id))

        logger.debug("Scene attributed to user", user_id=user_id, scene_id=scene_id)

    async def user_has_job_access(self, user_id: str, scene_id: str) -> bool:
        async with session_scope(self.session_factory) as session:
            stmt = select(UserScene.scene_id).where(
                UserScene.user_id == user_id,
                UserScene.scene_id == scene_id,
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None
