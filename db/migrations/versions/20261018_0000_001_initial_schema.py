"""Initial schema with users, user_scenes, scenes and nerf_outputs

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('user_id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('idx_users_username', 'users', ['username'])

    # Authorization relation, one row per (user, scene)
    op.create_table(
        'user_scenes',
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('scene_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('user_id', 'scene_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
    )
    op.create_index('idx_user_scenes_scene_id', 'user_scenes', ['scene_id'])

    # Scenes table
    op.create_table(
        'scenes',
        sa.Column('scene_id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('video_path', sa.String(512), nullable=True),
        sa.Column('training_config', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )

    # Trainer outputs, one row per (scene, output type, iteration)
    op.create_table(
        'nerf_outputs',
        sa.Column('scene_id', sa.String(36), nullable=False),
        sa.Column('output_type', sa.String(64), nullable=False),
        sa.Column('iteration', sa.String(32), nullable=False),
        sa.Column('file_path', sa.String(1024), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('scene_id', 'output_type', 'iteration'),
        sa.ForeignKeyConstraint(['scene_id'], ['scenes.scene_id'], ondelete='CASCADE'),
    )


def downgrade() -> None:
    op.drop_table('nerf_outputs')
    op.drop_table('scenes')
    op.drop_index('idx_user_scenes_scene_id', table_name='user_scenes')
    op.drop_table('user_scenes')
    op.drop_index('idx_users_username', table_name='users')
    op.drop_table('users')
