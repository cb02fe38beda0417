"""Background execution of analyses."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor, as_completed
from typing import Iterable, Iterator, Tuple

from .errors import AnalysisCancelled, AnalysisError
from .models import AnalysisRecord
from .pipeline import AnalysisAssembler, ByteSource, DeclaredAttributes, analyze
from .sources import DEFAULT_CHUNK_SIZE, ChunkSource

LOGGER = logging.getLogger(__name__)


def _label(source: ByteSource) -> str:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return f"<{len(source)} bytes in memory>"
    if isinstance(source, ChunkSource):
        return source.name
    return str(source)


class AnalysisWorker:
    """Run analyses on a thread pool so callers are never blocked by large files.

    Analyses share nothing but the assembler, which holds no per-file state.
    The pool size is the caller's concurrency limit; there are no retries.
    """

    def __init__(
        self,
        assembler: AnalysisAssembler | None = None,
        *,
        max_workers: int = 2,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.assembler = assembler or AnalysisAssembler()
        self.chunk_size = chunk_size
        self._cancel = threading.Event()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="forensight-analysis"
        )

    def submit(
        self,
        byte_source: ByteSource,
        declared_attributes: DeclaredAttributes = None,
        *,
        cancel: threading.Event | None = None,
    ) -> Future[AnalysisRecord]:
        """Schedule one analysis and return its future.

        Args:
            byte_source: Path, bytes, or chunk source to analyze.
            declared_attributes: Attributes claimed by the uploader.
            cancel: Event cancelling only this analysis; the worker-wide
                event set by ``cancel_all`` is used when omitted.
        """
        return self._executor.submit(
            analyze,
            byte_source,
            declared_attributes,
            chunk_size=self.chunk_size,
            assembler=self.assembler,
            cancel=cancel or self._cancel,
        )

    def run_all(
        self, items: Iterable[Tuple[ByteSource, DeclaredAttributes]]
    ) -> Iterator[Tuple[ByteSource, AnalysisRecord | AnalysisError]]:
        """Analyze every item and yield ``(source, record or error)`` as each completes.

        Every submitted item is yielded exactly once, including items that
        were still queued when ``cancel_all`` was called.
        """
        futures = {self.submit(source, attributes): source for source, attributes in items}
        for future in as_completed(futures):
            source = futures[future]
            yield source, self._outcome(future, source)

    @staticmethod
    def _outcome(
        future: Future[AnalysisRecord], source: ByteSource
    ) -> AnalysisRecord | AnalysisError:
        label = _label(source)
        try:
            return future.result()
        except CancelledError:
            return AnalysisCancelled(f"Analysis of {label} was cancelled before it started.")
        except AnalysisError as exc:
            LOGGER.error("Analysis of %s failed: %s", label, exc)
            return exc
        except Exception as exc:
            LOGGER.exception("Unexpected failure analyzing %s", label)
            error = AnalysisError(f"{label}: unexpected failure: {exc}")
            error.__cause__ = exc
            return error

    def cancel_all(self) -> None:
        """Cancel running and queued analyses at their next chunk boundary.

        Queued analyses still run, but stop with ``AnalysisCancelled`` before
        their first chunk is read.
        """
        self._cancel.set()
        self._executor.shutdown(wait=False)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "AnalysisWorker":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


__all__ = ["AnalysisWorker"]
