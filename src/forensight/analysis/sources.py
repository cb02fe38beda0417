"""Chunked byte sources feeding the analysis pipeline."""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, ContextManager, Iterator, Optional

from .errors import ReadError
from .models import ByteChunk

DEFAULT_CHUNK_SIZE = 2 * 1024 * 1024


class ChunkSource(ABC):
    """Sequential access to a file's bytes in bounded-size chunks.

    Chunks are produced in order starting at offset 0 with no gaps or overlap.
    ``read_prefix`` performs an independent bounded read and never disturbs
    chunk iteration. An ``OSError`` raised while reading a chunk surfaces as
    ``ReadError``.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be a positive number of bytes.")
        self.chunk_size = chunk_size
        self._offset = 0

    @property
    @abstractmethod
    def name(self) -> str:
        """Return a human-readable name for error messages."""

    @property
    def size(self) -> Optional[int]:
        """Return the total size in bytes when known."""
        return None

    @property
    def offset(self) -> int:
        """Return the offset of the next chunk."""
        return self._offset

    def next_chunk(self) -> ByteChunk | None:
        """Return the next chunk, or None once the source is exhausted."""
        try:
            data = self._read_next(self.chunk_size)
        except OSError as exc:
            raise ReadError(f"{self.name}: read failed at offset {self._offset}: {exc}") from exc
        if not data:
            return None
        chunk = ByteChunk(offset=self._offset, data=data)
        self._offset += len(data)
        return chunk

    def __iter__(self) -> Iterator[ByteChunk]:
        while True:
            chunk = self.next_chunk()
            if chunk is None:
                return
            yield chunk

    def rewind(self) -> None:
        """Restart chunk iteration at offset 0."""
        self._reset()
        self._offset = 0

    @abstractmethod
    def read_prefix(self, n: int) -> bytes:
        """Return up to ``n`` leading bytes without consuming chunks."""

    @abstractmethod
    def open_stream(self) -> ContextManager[BinaryIO]:
        """Return a context manager yielding a seekable stream over the full content."""

    def close(self) -> None:
        """Release any resources held by the source."""

    def __enter__(self) -> "ChunkSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Internal helpers -------------------------------------------------

    @abstractmethod
    def _read_next(self, size: int) -> bytes:
        """Return up to ``size`` bytes starting at the current offset."""

    @abstractmethod
    def _reset(self) -> None:
        """Prepare the next read to start at offset 0."""


class FileChunkSource(ChunkSource):
    """Chunk source reading a file on disk."""

    def __init__(self, path: Path | str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        super().__init__(chunk_size)
        self.path = Path(path)
        self._handle: BinaryIO | None = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def size(self) -> Optional[int]:
        try:
            return self.path.stat().st_size
        except OSError as exc:
            raise ReadError(f"{self.path}: {exc}") from exc

    def read_prefix(self, n: int) -> bytes:
        try:
            with self.path.open("rb") as fh:
                return fh.read(max(0, n))
        except OSError as exc:
            raise ReadError(f"{self.path}: {exc}") from exc

    @contextmanager
    def open_stream(self) -> Iterator[BinaryIO]:
        try:
            fh = self.path.open("rb")
        except OSError as exc:
            raise ReadError(f"{self.path}: {exc}") from exc
        with fh:
            yield fh

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def _read_next(self, size: int) -> bytes:
        try:
            if self._handle is None:
                self._handle = self.path.open("rb")
                self._handle.seek(self._offset)
            return self._handle.read(size)
        except OSError as exc:
            raise ReadError(f"{self.path}: {exc}") from exc

    def _reset(self) -> None:
        self.close()


class BytesChunkSource(ChunkSource):
    """Chunk source over an in-memory upload."""

    def __init__(
        self,
        data: bytes,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        *,
        name: str = "<memory>",
    ) -> None:
        super().__init__(chunk_size)
        self._data = bytes(data)
        self._view = memoryview(self._data)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> Optional[int]:
        return len(self._data)

    def read_prefix(self, n: int) -> bytes:
        return self._data[: max(0, n)]

    @contextmanager
    def open_stream(self) -> Iterator[BinaryIO]:
        with io.BytesIO(self._data) as fh:
            yield fh

    def _read_next(self, size: int) -> bytes:
        return bytes(self._view[self._offset : self._offset + size])

    def _reset(self) -> None:
        pass


__all__ = ["DEFAULT_CHUNK_SIZE", "ChunkSource", "FileChunkSource", "BytesChunkSource"]
