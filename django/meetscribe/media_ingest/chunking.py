from pathlib import Path
from typing import List, NamedTuple


class AudioChunk(NamedTuple):
    index: int
    data: bytes


def split_audio(data: bytes, chunk_size: int) -> List[AudioChunk]:
    """Slice ``data`` into consecutive chunks of at most ``chunk_size`` bytes.

    A buffer at or under the threshold comes back as a single chunk. Larger
    buffers are cut into ``ceil(len / chunk_size)`` slices; every slice but
    the last is exactly ``chunk_size`` bytes. The byte ranges are raw cuts,
    so chunk boundaries do not follow audio frame boundaries.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if len(data) <= chunk_size:
        return [AudioChunk(0, data)]
    view = memoryview(data)
    return [
        AudioChunk(index, bytes(view[offset:offset + chunk_size]))
        for index, offset in enumerate(range(0, len(data), chunk_size))
    ]


def chunk_filename(index: int, original_name: str) -> str:
    ext = Path(original_name or "").suffix.lower() or ".mp3"
    return f"chunk-{index}{ext}"
