"""Tests for incremental MD5 and SHA-256 digests."""

import hashlib

import pytest

from forensight.analysis import (
    ByteChunk,
    DigestFinalizedError,
    DigestStateError,
    IncrementalDigest,
    UnsupportedAlgorithm,
)
from forensight.analysis.softhash import SoftwareMD5, SoftwareSHA256

KNOWN_VECTORS = [
    ("md5", b"", "d41d8cd98f00b204e9800998ecf8427e"),
    ("md5", b"abc", "900150983cd24fb0d6963f7d28e17f72"),
    ("sha256", b"", "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"),
    ("sha256", b"abc", "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"),
]


@pytest.mark.parametrize("backend", ["auto", "software"])
@pytest.mark.parametrize(("algorithm", "data", "expected"), KNOWN_VECTORS)
def test_known_vectors(backend: str, algorithm: str, data: bytes, expected: str) -> None:
    digest = IncrementalDigest(algorithm, backend)
    digest.update(data)

    assert digest.hexdigest() == expected


@pytest.mark.parametrize("backend", ["auto", "software"])
@pytest.mark.parametrize("algorithm", ["md5", "sha256"])
def test_digest_is_independent_of_chunk_boundaries(backend: str, algorithm: str) -> None:
    """Feeding any partition of the stream must give the single-call digest."""
    data = bytes(range(256)) * 9 + b"tail"
    expected = hashlib.new(algorithm, data).hexdigest()

    for size in (1, 3, 55, 56, 63, 64, 65, 1000, len(data)):
        digest = IncrementalDigest(algorithm, backend)
        for start in range(0, len(data), size):
            digest.update(ByteChunk(offset=start, data=data[start : start + size]))
        assert digest.bytes_processed == len(data)
        assert digest.hexdigest() == expected, f"chunk size {size}"


def test_software_implementations_match_hashlib_around_padding_edges() -> None:
    for length in (0, 1, 55, 56, 57, 63, 64, 65, 119, 120, 128, 1000):
        data = b"\xa5" * length
        md5 = SoftwareMD5()
        md5.update(data)
        sha = SoftwareSHA256()
        sha.update(data)

        assert md5.hexdigest() == hashlib.md5(data).hexdigest()
        assert sha.hexdigest() == hashlib.sha256(data).hexdigest()


def test_software_digest_does_not_consume_state() -> None:
    sha = SoftwareSHA256()
    sha.update(b"ab")
    first = sha.hexdigest()
    sha.update(b"c")

    assert first == hashlib.sha256(b"ab").hexdigest()
    assert sha.hexdigest() == hashlib.sha256(b"abc").hexdigest()


def test_finalize_twice_raises() -> None:
    digest = IncrementalDigest("md5")
    digest.finalize()

    assert digest.finalized
    with pytest.raises(DigestFinalizedError):
        digest.finalize()


def test_update_after_finalize_raises() -> None:
    digest = IncrementalDigest("sha256")
    digest.hexdigest()

    with pytest.raises(DigestFinalizedError):
        digest.update(b"more")


def test_init_resets_a_finalized_digest() -> None:
    digest = IncrementalDigest("sha256")
    digest.update(b"discarded")
    digest.finalize()

    digest.init()
    digest.update(b"abc")

    assert digest.bytes_processed == 3
    assert digest.hexdigest() == hashlib.sha256(b"abc").hexdigest()


def test_out_of_order_chunk_raises() -> None:
    digest = IncrementalDigest("md5")
    digest.update(ByteChunk(offset=0, data=b"abcd"))

    with pytest.raises(DigestStateError):
        digest.update(ByteChunk(offset=8, data=b"ijkl"))


def test_unknown_algorithm_raises() -> None:
    with pytest.raises(UnsupportedAlgorithm):
        IncrementalDigest("sha3-512")


def test_native_backend_refusal_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(name: str, **_: object) -> None:
        raise ValueError(f"unsupported hash type {name}")

    monkeypatch.setattr("forensight.analysis.digests.hashlib.new", _refuse)

    with pytest.raises(UnsupportedAlgorithm):
        IncrementalDigest("md5", "native")


def test_auto_backend_falls_back_to_software(monkeypatch: pytest.MonkeyPatch) -> None:
    def _refuse(name: str, **_: object) -> None:
        raise ValueError(f"unsupported hash type {name}")

    monkeypatch.setattr("forensight.analysis.digests.hashlib.new", _refuse)

    digest = IncrementalDigest("md5", "auto")
    digest.update(b"abc")

    assert digest.hexdigest() == "900150983cd24fb0d6963f7d28e17f72"
