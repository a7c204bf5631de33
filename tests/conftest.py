"""Shared fixtures: in-memory stores, a stub broker and a sqlite database."""

import io
from typing import Dict, List, Optional
from uuid import uuid4

import dramatiq
import pytest
from dramatiq.brokers.stub import StubBroker
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from nerfserve.auth.crypto import hash_password
from nerfserve.errors import NotFound, PersistenceError, UsernameTaken
from nerfserve.models import Base, User, UserScene
from nerfserve.queue import JobPublisher
from nerfserve.schemas import Nerf, SceneSummary, TrainingConfig, Video
from nerfserve.services.client import ClientService
from nerfserve.storage import VideoStorage

SFM_QUEUE = "sfm-in"


class FakeUpload:
    """Minimal stand-in for an UploadFile."""

    def __init__(self, filename: Optional[str], data: bytes = b""):
        self.filename = filename
        self._buffer = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


class FakeUserManager:
    def __init__(self):
        self.users: Dict[str, User] = {}
        self.calls: List[str] = []
        self.access_error: Optional[Exception] = None
        self.fail_on: set = set()

    def create(self, username: str, password: str = "password123") -> User:
        user = User(user_id=str(uuid4()), username=username, password_hash=hash_password(password))
        self.users[user.user_id] = user
        return user

    def _check(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise PersistenceError(f"{name} failed")

    async def get_user_by_username(self, username: str) -> User:
        self._check("get_user_by_username")
        for user in self.users.values():
            if user.username == username:
                return user
        raise NotFound(username)

    async def get_user_by_id(self, user_id: str) -> User:
        self._check("get_user_by_id")
        if user_id not in self.users:
            raise NotFound(user_id)
        return self.users[user_id]

    async def generate_user(self, username: str, password: str) -> User:
        self._check("generate_user")
        if any(u.username == username for u in self.users.values()):
            raise UsernameTaken(username)
        return self.create(username, password)

    async def add_scene(self, user_id: str, scene_id: str) -> None:
        self._check("add_scene")
        self.users[user_id].scene_links.append(UserScene(user_id=user_id, scene_id=scene_id))

    async def user_has_job_access(self, user_id: str, scene_id: str) -> bool:
        self.calls.append("user_has_job_access")
        if self.access_error is not None:
            raise self.access_error
        user = self.users.get(user_id)
        return user is not None and scene_id in user.scene_ids


class FakeSceneManager:
    def __init__(self):
        self.videos: Dict[str, Video] = {}
        self.names: Dict[str, str] = {}
        self.configs: Dict[str, TrainingConfig] = {}
        self.outputs: Dict[str, Dict[str, Dict[str, str]]] = {}
        self.calls: List[str] = []
        self.fail_on: set = set()

    def _check(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise PersistenceError(f"{name} failed")

    async def set_video(self, scene_id, video):
        self._check("set_video")
        self.videos[scene_id] = video

    async def set_scene_name(self, scene_id, name):
        self._check("set_scene_name")
        self.names[scene_id] = name

    async def set_training_config(self, scene_id, config):
        self._check("set_training_config")
        self.configs[scene_id] = config

    async def get_training_config(self, scene_id):
        self._check("get_training_config")
        if scene_id not in self.configs:
            raise NotFound(scene_id)
        return self.configs[scene_id]

    async def get_nerf(self, scene_id):
        self._check("get_nerf")
        if scene_id not in self.configs:
            raise NotFound(scene_id)
        return Nerf(file_paths=self.outputs.get(scene_id, {}))

    async def get_scene_name(self, scene_id):
        self._check("get_scene_name")
        if scene_id not in self.names:
            raise NotFound(scene_id)
        return self.names[scene_id]

    async def get_scene_summaries(self, scene_ids):
        self._check("get_scene_summaries")
        return [
            SceneSummary(
                scene_id=scene_id,
                name=self.names.get(scene_id),
                output_types=self.configs[scene_id].nerf_training_config.output_types,
            )
            for scene_id in scene_ids
            if scene_id in self.configs
        ]

    def add_output(self, scene_id, output_type, iteration, path):
        self.outputs.setdefault(scene_id, {}).setdefault(output_type, {})[iteration] = str(path)


class FailingPublisher:
    def __init__(self, error: Exception):
        self.error = error

    def publish_job(self, scene_id, video, config):
        raise self.error


@pytest.fixture
def stub_broker():
    broker = StubBroker()
    yield broker
    broker.flush_all()
    broker.close()


def queued_messages(broker: StubBroker, queue_name: str = SFM_QUEUE) -> List[dramatiq.Message]:
    queue = broker.queues[queue_name]
    messages = []
    while not queue.empty():
        messages.append(dramatiq.Message.decode(queue.get_nowait()))
    return messages


@pytest.fixture
def publisher(stub_broker):
    return JobPublisher(stub_broker, queue_name=SFM_QUEUE, actor_name="process_sfm_job")


@pytest.fixture
def videos_dir(tmp_path):
    return tmp_path / "videos"


@pytest.fixture
def user_manager():
    return FakeUserManager()


@pytest.fixture
def scene_manager():
    return FakeSceneManager()


@pytest.fixture
def service(scene_manager, user_manager, publisher, videos_dir):
    return ClientService(
        scene_manager=scene_manager,
        user_manager=user_manager,
        publisher=publisher,
        video_storage=VideoStorage(root=str(videos_dir)),
    )


@pytest.fixture
def alice(user_manager):
    return user_manager.create("alice")


@pytest.fixture
def scene(tmp_path, scene_manager, user_manager, alice):
    """A scene owned by alice with an rgb output at iteration 1000."""
    scene_id = str(uuid4())
    scene_manager.names[scene_id] = "Kitchen"
    scene_manager.configs[scene_id] = TrainingConfig.model_validate({
        "nerf_training_config": {
            "training_mode": "gaussian",
            "output_types": ["rgb", "splat_cloud"],
            "save_iterations": [1000],
            "total_iterations": 1000,
        }
    })
    artifact = tmp_path / "outputs" / "rgb_1000.mp4"
    artifact.parent.mkdir(parents=True)
    artifact.write_bytes(bytes(range(256)) * 6000)  # 1,536,000 bytes
    scene_manager.add_output(scene_id, "rgb", "1000", artifact)
    user_manager.users[alice.user_id].scene_links.append(UserScene(user_id=alice.user_id, scene_id=scene_id))
    return scene_id


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
