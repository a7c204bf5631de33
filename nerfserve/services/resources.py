"""
Chunk metadata and byte-range resolution for training artifacts.

Artifacts are reported in fixed 1 MiB chunks so clients can fetch them
piecewise. Every call re-probes the filesystem; nothing is cached.

Chunk arithmetic for a file of ``size`` bytes and unit ``U``:

- ``chunks = ceil(size / U)``
- ``last_chunk_size = size % U``, or ``U`` when the remainder is 0
- a zero-byte file has ``chunks = 0`` and ``last_chunk_size = 0``
"""

import re
from typing import Optional, Tuple

from nerfserve.errors import RangeNotSatisfiable
from nerfserve.schemas import ResourceInfo
from nerfserve.storage import file_size

CHUNK_SIZE = 1024 * 1024

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$")


def chunk_layout(size: int, unit: int = CHUNK_SIZE) -> Tuple[int, int]:
    """Return (chunks, last_chunk_size) for a file of ``size`` bytes."""
    if size <= 0:
        return 0, 0
    chunks = (size + unit - 1) // unit
    last_chunk_size = size % unit or unit
    return chunks, last_chunk_size


def resource_info(path: Optional[str]) -> ResourceInfo:
    """Probe an artifact path and describe it in chunks."""
    size = file_size(path) if path else None
    if size is None:
        return ResourceInfo(exists=False)

    chunks, last_chunk_size = chunk_layout(size)
    return ResourceInfo(
        exists=True,
        size=size,
        chunks=chunks,
        last_chunk_size=last_chunk_size,
    )


def chunk_range(index: int, size: int, unit: int = CHUNK_SIZE) -> Tuple[int, int]:
    """Inclusive byte range of chunk ``index``."""
    chunks, _ = chunk_layout(size, unit)
    if index < 0 or index >= chunks:
        raise RangeNotSatisfiable(f"Chunk {index} out of range (chunks={chunks})", size=size)
    start = index * unit
    end = min(start + unit, size) - 1
    return start, end


def parse_range(header: Optional[str], size: int) -> Tuple[int, int]:
    """
    Resolve a single ``bytes=`` Range header against a file of ``size`` bytes.

    Supports ``a-b``, ``a-`` and the suffix form ``-n``. An end past the last
    byte is clamped. Without a header the whole file is returned.

    Returns:
        Inclusive (start, end)

    Raises:
        RangeNotSatisfiable: Malformed, multi-range or out-of-bounds requests
    """
    if not header:
        return 0, size - 1

    match = _RANGE_RE.match(header)
    if not match:
        raise RangeNotSatisfiable(f"Unsupported range: {header}", size=size)

    first, last = match.groups()
    if not first and not last:
        raise RangeNotSatisfiable(f"Unsupported range: {header}", size=size)

    if not first:
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiable(f"Unsatisfiable range: {header}", size=size)
        return max(size - suffix, 0), size - 1

    start = int(first)
    end = int(last) if last else size - 1
    if start >= size or end < start:
        raise RangeNotSatisfiable(f"Unsatisfiable range: {header}", size=size)
    return start, min(end, size - 1)
