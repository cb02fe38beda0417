"""Tests for chunked byte sources."""

from pathlib import Path

import pytest

from forensight.analysis import BytesChunkSource, ChunkSource, FileChunkSource, ReadError


def test_bytes_source_yields_contiguous_chunks() -> None:
    source = BytesChunkSource(b"0123456789", chunk_size=4)

    chunks = list(source)

    assert [chunk.offset for chunk in chunks] == [0, 4, 8]
    assert [chunk.data for chunk in chunks] == [b"0123", b"4567", b"89"]
    assert chunks[-1].end == 10
    assert source.next_chunk() is None


def test_empty_source_yields_no_chunks() -> None:
    source = BytesChunkSource(b"", chunk_size=4)

    assert list(source) == []
    assert source.read_prefix(8) == b""


def test_read_prefix_does_not_disturb_iteration(tmp_path: Path) -> None:
    path = tmp_path / "sample.bin"
    path.write_bytes(b"abcdefghij")

    with FileChunkSource(path, chunk_size=3) as source:
        first = source.next_chunk()
        assert source.read_prefix(5) == b"abcde"
        rest = list(source)

    assert first is not None and first.data == b"abc"
    assert b"".join(chunk.data for chunk in rest) == b"defghij"


def test_rewind_restarts_at_offset_zero(tmp_path: Path) -> None:
    path = tmp_path / "sample.bin"
    path.write_bytes(b"abcdef")

    with FileChunkSource(path, chunk_size=4) as source:
        list(source)
        source.rewind()

        assert source.offset == 0
        assert [chunk.data for chunk in source] == [b"abcd", b"ef"]


def test_open_stream_exposes_full_content() -> None:
    source = BytesChunkSource(b"payload", chunk_size=2)

    with source.open_stream() as stream:
        assert stream.read() == b"payload"


def test_missing_file_raises_read_error(tmp_path: Path) -> None:
    source = FileChunkSource(tmp_path / "missing.bin")

    with pytest.raises(ReadError):
        source.next_chunk()
    with pytest.raises(ReadError):
        source.read_prefix(4)


def test_non_positive_chunk_size_is_rejected() -> None:
    with pytest.raises(ValueError):
        BytesChunkSource(b"data", chunk_size=0)


class _FailingSource(BytesChunkSource):
    """In-memory source whose second chunk read fails."""

    def __init__(self, data: bytes, chunk_size: int) -> None:
        super().__init__(data, chunk_size, name="flaky.bin")
        self.reads = 0

    def _read_next(self, size: int) -> bytes:
        self.reads += 1
        if self.reads == 2:
            raise OSError("device not ready")
        return super()._read_next(size)


def test_os_error_mid_stream_raises_read_error() -> None:
    source = _FailingSource(b"abcdefgh", chunk_size=4)

    assert source.next_chunk() is not None
    with pytest.raises(ReadError, match="flaky.bin"):
        source.next_chunk()


def test_incomplete_source_cannot_be_instantiated() -> None:
    class _NoReads(ChunkSource):
        @property
        def name(self) -> str:
            return "incomplete"

    with pytest.raises(TypeError):
        _NoReads()
