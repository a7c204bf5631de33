"""Scene model and its registry of training outputs."""

from sqlalchemy import Column, String, JSON, TIMESTAMP, ForeignKey, PrimaryKeyConstraint, func
from sqlalchemy.orm import relationship
from nerfserve.models.base import Base


class Scene(Base):
    """Scene model - one video-to-NeRF reconstruction job."""

    __tablename__ = "scenes"

    scene_id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=True)
    video_path = Column(String(512), nullable=True)
    training_config = Column(JSON, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    outputs = relationship("NerfOutput", back_populates="scene", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Scene(scene_id={self.scene_id}, name={self.name})>"


class NerfOutput(Base):
    """One artifact file produced by the trainer for an output type and iteration."""

    __tablename__ = "nerf_outputs"

    scene_id = Column(String(36), ForeignKey("scenes.scene_id", ondelete="CASCADE"), nullable=False)
    output_type = Column(String(64), nullable=False)
    iteration = Column(String(32), nullable=False)
    file_path = Column(String(1024), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        PrimaryKeyConstraint('scene_id', 'output_type', 'iteration'),
    )

    # Relationships
    scene = relationship("Scene", back_populates="outputs")

    def __repr__(self):
        return f"<NerfOutput(scene_id={self.scene_id}, output_type={self.output_type}, iteration={self.iteration})>"
