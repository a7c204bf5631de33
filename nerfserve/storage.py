"""Local file storage for uploaded videos and training artifacts."""

import asyncio
import os
from typing import AsyncIterator, Optional

import aiofiles
import aiofiles.os

from nerfserve.config import settings
from nerfserve.errors import StorageError
from nerfserve.logging_config import logger


class VideoStorage:
    """Durable storage for source videos under a single root directory."""

    def __init__(self, root: Optional[str] = None, chunk_size: Optional[int] = None):
        self.root = root or settings.videos_dir
        self.chunk_size = chunk_size or settings.upload_chunk_size

    def path_for(self, scene_id: str) -> str:
        return os.path.join(self.root, f"{scene_id}.mp4")

    async def save_upload(self, upload, scene_id: str) -> str:
        """
        Stream an upload to ``<root>/<scene_id>.mp4``.

        The source is read until exhausted before returning. A cancelled copy
        removes the partial file.

        Args:
            upload: Object with an async ``read(size)`` (e.g. Starlette UploadFile)
            scene_id: Scene identifier used as the file stem

        Returns:
            Path of the stored video

        Raises:
            StorageError: If the directory or file cannot be written
        """
        destination = self.path_for(scene_id)
        written = 0

        try:
            await aiofiles.os.makedirs(self.root, exist_ok=True)
            async with aiofiles.open(destination, "wb") as out_file:
                while True:
                    chunk = await upload.read(self.chunk_size)
                    if not chunk:
                        break
                    await out_file.write(chunk)
                    written += len(chunk)
        except asyncio.CancelledError:
            logger.warning("Video upload cancelled", scene_id=scene_id, bytes_written=written)
            await self._discard(destination)
            raise
        except OSError as e:
            logger.error("Failed to store video", scene_id=scene_id, path=destination, error=str(e))
            raise StorageError(f"Failed to store video: {e}") from e

        logger.info("Stored uploaded video", scene_id=scene_id, path=destination, size_bytes=written)
        return destination

    async def _discard(self, path: str) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass


def file_size(path: str) -> Optional[int]:
    """Size of a regular file in bytes, or None if it is missing or unreadable."""
    try:
        if not os.path.isfile(path) or not os.access(path, os.R_OK):
            return None
        return os.stat(path).st_size
    except OSError:
        return None


async def read_range(path: str, start: int, end: int, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield bytes ``start..end`` (inclusive) of a file in blocks of at most chunk_size."""
    remaining = end - start + 1
    try:
        async with aiofiles.open(path, "rb") as f:
            await f.seek(start)
            while remaining > 0:
                data = await f.read(min(chunk_size, remaining))
                if not data:
                    break
                remaining -= len(data)
                yield data
    except OSError as e:
        logger.error("Failed to read artifact", path=path, error=str(e))
        raise StorageError(f"Failed to read artifact: {e}") from e
