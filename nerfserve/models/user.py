"""User model and the user/scene authorization relation."""

from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, PrimaryKeyConstraint, func
from sqlalchemy.orm import relationship
from nerfserve.auth.crypto import verify_password
from nerfserve.errors import AuthenticationFailed
from nerfserve.models.base import Base


class User(Base):
    """User account model."""

    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    scene_links = relationship(
        "UserScene",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserScene.created_at",
    )

    @property
    def scene_ids(self) -> list[str]:
        """Scenes this user may access, oldest first."""
        return [link.scene_id for link in self.scene_links]

    def check_password(self, password: str) -> None:
        """Raise AuthenticationFailed unless password matches the stored hash."""
        if not verify_password(password, self.password_hash):
            raise AuthenticationFailed("Invalid credentials")

    def __repr__(self):
        return f"<User(user_id={self.user_id}, username={self.username})>"


class UserScene(Base):
    """Append-only edge granting a user access to a scene.

    Attributing a scene inserts a row here instead of rewriting a per-user
    list, so concurrent submissions by the same user cannot lose each other.
    """

    __tablename__ = "user_scenes"

    user_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    scene_id = Column(String(36), nullable=False, index=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        PrimaryKeyConstraint('user_id', 'scene_id'),
    )

    # Relationships
    user = relationship("User", back_populates="scene_links")

    def __repr__(self):
        return f"<UserScene(user_id={self.user_id}, scene_id={self.scene_id})>"
