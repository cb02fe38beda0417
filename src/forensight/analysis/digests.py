"""Incremental content digests."""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Literal

from .errors import DigestFinalizedError, DigestStateError, UnsupportedAlgorithm
from .models import ByteChunk
from .softhash import SOFTWARE_ALGORITHMS

LOGGER = logging.getLogger(__name__)

DigestBackend = Literal["auto", "native", "software"]
DIGEST_BACKENDS = ("auto", "native", "software")


def new_hash(algorithm: str, backend: DigestBackend = "auto") -> Any:
    """Return a fresh hash object for ``algorithm``.

    Args:
        algorithm: Either ``md5`` or ``sha256``.
        backend: ``native`` uses hashlib only, ``software`` uses the pure-Python
            implementation, ``auto`` prefers hashlib and falls back to software
            when hashlib refuses the algorithm.

    Raises:
        UnsupportedAlgorithm: If the algorithm is unknown, or hashlib refuses it
            and the backend does not allow a fallback.
    """
    if algorithm not in SOFTWARE_ALGORITHMS:
        raise UnsupportedAlgorithm(f"Unsupported digest algorithm '{algorithm}'.")
    if backend not in DIGEST_BACKENDS:
        raise ValueError(f"Unknown digest backend '{backend}'.")

    if backend == "software":
        return SOFTWARE_ALGORITHMS[algorithm]()

    try:
        return hashlib.new(algorithm, usedforsecurity=False)
    except ValueError as exc:
        if backend == "native":
            raise UnsupportedAlgorithm(
                f"hashlib does not provide '{algorithm}' in this environment: {exc}"
            ) from exc
        LOGGER.info("hashlib refused %s (%s); using the software implementation.", algorithm, exc)
        return SOFTWARE_ALGORITHMS[algorithm]()


class IncrementalDigest:
    """Streaming digest over ordered chunks of one file.

    The instance carries the algorithm's internal state between ``update``
    calls, so feeding any partition of a byte stream yields the same digest as
    hashing it in one call. ``finalize`` may be called once; the instance is
    spent afterwards until ``init`` resets it.
    """

    def __init__(self, algorithm: str, backend: DigestBackend = "auto") -> None:
        self.algorithm = algorithm.lower()
        self.backend = backend
        self.init()

    def init(self) -> None:
        """Reset to the algorithm's initial state."""
        self._hash = new_hash(self.algorithm, self.backend)
        self._bytes_processed = 0
        self._finalized = False

    @property
    def bytes_processed(self) -> int:
        return self._bytes_processed

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def digest_size(self) -> int:
        return self._hash.digest_size

    def update(self, chunk: ByteChunk | bytes) -> None:
        """Absorb a chunk into the running state.

        Raises:
            DigestFinalizedError: If the digest was already finalized.
            DigestStateError: If a chunk does not start where the previous ended.
        """
        if self._finalized:
            raise DigestFinalizedError(f"{self.algorithm} digest was already finalized.")
        if isinstance(chunk, ByteChunk):
            if chunk.offset != self._bytes_processed:
                raise DigestStateError(
                    f"{self.algorithm} digest expected offset {self._bytes_processed}, "
                    f"got chunk at {chunk.offset}."
                )
            data = chunk.data
        else:
            data = chunk
        self._hash.update(data)
        self._bytes_processed += len(data)

    def finalize(self) -> bytes:
        """Apply padding once and return the digest bytes.

        Raises:
            DigestFinalizedError: On a second call.
        """
        if self._finalized:
            raise DigestFinalizedError(f"{self.algorithm} digest was already finalized.")
        self._finalized = True
        return self._hash.digest()

    def hexdigest(self) -> str:
        """Finalize and return the digest as fixed-width lowercase hex."""
        return self.finalize().hex()


__all__ = ["DigestBackend", "DIGEST_BACKENDS", "IncrementalDigest", "new_hash"]
