"""Tests for the job publisher."""

import pytest

from nerfserve.errors import QueueError
from nerfserve.queue import JobPublisher
from nerfserve.schemas import NerfTrainingConfig, TrainingConfig, Video

from conftest import queued_messages


@pytest.fixture
def config():
    return TrainingConfig(
        nerf_training_config=NerfTrainingConfig(
            output_types=["rgb", "splat_cloud"],
            save_iterations=[7000, 30000],
            total_iterations=30000,
        )
    )


def test_publish_sends_one_message(publisher, stub_broker, config):
    publisher.publish_job("scene-1", Video(file_path="data/raw/videos/scene-1.mp4"), config)

    messages = queued_messages(stub_broker)
    assert len(messages) == 1
    message = messages[0]
    assert message.queue_name == "sfm-in"
    assert message.actor_name == "process_sfm_job"
    assert message.args[0] == "scene-1"
    assert message.args[1] == {"file_path": "data/raw/videos/scene-1.mp4"}
    assert message.args[2] == config.model_dump()


def test_broker_failure_becomes_queue_error(stub_broker, config, monkeypatch):
    publisher = JobPublisher(stub_broker, queue_name="sfm-in", actor_name="process_sfm_job")

    def refuse(*args, **kwargs):
        raise ConnectionError("redis unavailable")

    monkeypatch.setattr(stub_broker, "enqueue", refuse)

    with pytest.raises(QueueError) as exc_info:
        publisher.publish_job("scene-1", Video(file_path="v.mp4"), config)

    assert exc_info.value.retryable
