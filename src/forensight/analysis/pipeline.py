"""High-level analysis orchestration."""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Union

from pydantic import ValidationError

from forensight.config.models import ForensightConfig

from .detectors import DEFAULT_SNIFF_BYTES, ContentSniffer
from .digests import DigestBackend, IncrementalDigest
from .errors import AnalysisCancelled, InvalidAttributesError, ReadError
from .extractors import MetadataDispatcher
from .models import AnalysisRecord, FileAttributes, HashResult, SignatureReason
from .signatures import SignatureInspector
from .sources import DEFAULT_CHUNK_SIZE, BytesChunkSource, ChunkSource, FileChunkSource

LOGGER = logging.getLogger(__name__)

ByteSource = Union[ChunkSource, Path, str, bytes, bytearray, memoryview]
DeclaredAttributes = Union[FileAttributes, Mapping[str, Any], None]


def _check_cancel(cancel: threading.Event | None, name: str) -> None:
    if cancel is not None and cancel.is_set():
        raise AnalysisCancelled(f"Analysis of {name} was cancelled.")


class AnalysisAssembler:
    """Coordinate hashing, signature inspection and metadata extraction.

    One call to ``analyze`` reads the chunk stream exactly once, feeding every
    chunk to both digests, then checks the prefix signature and extracts
    metadata. Either a complete ``AnalysisRecord`` is returned or an
    ``AnalysisError`` is raised; no partial record is ever produced.
    """

    def __init__(
        self,
        inspector: SignatureInspector | None = None,
        dispatcher: MetadataDispatcher | None = None,
        *,
        digest_backend: DigestBackend = "auto",
        prefix_size: int = DEFAULT_SNIFF_BYTES,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.inspector = inspector or SignatureInspector()
        self.dispatcher = dispatcher or MetadataDispatcher()
        self.digest_backend = digest_backend
        self.prefix_size = max(prefix_size, self.inspector.signature_length)
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_config(cls, config: ForensightConfig) -> "AnalysisAssembler":
        """Build an assembler honoring the hashing, inspection and extraction settings."""
        sniffer = ContentSniffer()
        sniffer.prefix_size = config.inspection.prefix_bytes
        dispatcher = MetadataDispatcher(
            sniffer,
            enabled=config.extraction.enabled,
            disabled_categories=config.extraction.disabled_categories,
        )
        return cls(
            dispatcher=dispatcher,
            digest_backend=config.hashing.backend,
            prefix_size=config.inspection.prefix_bytes,
        )

    def compute_hashes(
        self,
        source: ChunkSource,
        *,
        cancel: threading.Event | None = None,
    ) -> tuple[HashResult, int]:
        """Hash the whole source in a single pass.

        Returns:
            tuple[HashResult, int]: The digests and the number of bytes hashed.
        """
        md5 = IncrementalDigest("md5", self.digest_backend)
        sha256 = IncrementalDigest("sha256", self.digest_backend)

        source.rewind()
        for chunk in source:
            _check_cancel(cancel, source.name)
            md5.update(chunk)
            sha256.update(chunk)
        _check_cancel(cancel, source.name)

        total = md5.bytes_processed
        return HashResult(md5=md5.hexdigest(), sha256=sha256.hexdigest()), total

    def analyze(
        self,
        source: ChunkSource,
        attributes: FileAttributes,
        *,
        cancel: threading.Event | None = None,
    ) -> AnalysisRecord:
        """Analyze ``source`` and return the assembled record.

        Args:
            source: Byte source of the file.
            attributes: Declared file attributes supplied by the caller.
            cancel: Optional event checked at every chunk boundary.

        Raises:
            ReadError: If the source cannot be read.
            UnsupportedAlgorithm: If a digest primitive is unavailable.
            AnalysisCancelled: If ``cancel`` is set before the record is built.
        """
        LOGGER.info("Analyzing %s (%s bytes declared)", attributes.name, attributes.size)
        hashes, total = self.compute_hashes(source, cancel=cancel)
        if total != attributes.size:
            LOGGER.warning(
                "%s: declared size %s differs from %s bytes read; recording bytes read.",
                attributes.name,
                attributes.size,
                total,
            )
            attributes = attributes.model_copy(update={"size": total})

        prefix = source.read_prefix(max(self.prefix_size, self.dispatcher.prefix_size))
        signature = self.inspector.inspect(prefix, attributes.declared_type)
        if signature.reason is SignatureReason.MISMATCHED:
            LOGGER.warning(
                "%s: leading bytes do not match declared type %s.",
                attributes.name,
                signature.declared_type,
            )

        _check_cancel(cancel, source.name)
        metadata = self.dispatcher.extract(source, attributes.declared_type, prefix=prefix)
        _check_cancel(cancel, source.name)

        record = AnalysisRecord(
            id=self._id_factory(),
            created_at=self._clock(),
            file_attributes=attributes,
            hash=hashes,
            signature=signature,
            metadata=metadata,
        )
        LOGGER.info(
            "Analysis %s complete for %s: signature=%s category=%s",
            record.id,
            attributes.name,
            signature.reason.value,
            metadata.category.value,
        )
        return record


def open_source(byte_source: ByteSource, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> ChunkSource:
    """Wrap a path or in-memory buffer in the matching chunk source."""
    if isinstance(byte_source, ChunkSource):
        return byte_source
    if isinstance(byte_source, (bytes, bytearray, memoryview)):
        return BytesChunkSource(bytes(byte_source), chunk_size)
    return FileChunkSource(Path(byte_source), chunk_size)


def _validate_attributes(data: dict[str, Any]) -> FileAttributes:
    try:
        return FileAttributes.model_validate(data)
    except ValidationError as exc:
        raise InvalidAttributesError(
            f"{data.get('name', '<unnamed>')}: invalid declared attributes: {exc.error_count()} error(s)"
        ) from exc


def _resolve_attributes(source: ChunkSource, declared: DeclaredAttributes) -> FileAttributes:
    if isinstance(declared, FileAttributes):
        return declared
    if isinstance(source, FileChunkSource):
        overrides = dict(declared or {})
        try:
            base = FileAttributes.from_path(source.path, overrides.pop("declared_type", None))
        except OSError as exc:
            raise ReadError(f"{source.path}: {exc}") from exc
        if not overrides:
            return base
        return _validate_attributes({**base.model_dump(), **overrides})
    if declared is None:
        return FileAttributes(name=source.name, size=source.size or 0)
    data = {"name": source.name, "size": source.size or 0, **dict(declared)}
    return _validate_attributes(data)


def analyze(
    byte_source: ByteSource,
    declared_attributes: DeclaredAttributes = None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    assembler: AnalysisAssembler | None = None,
    cancel: threading.Event | None = None,
) -> AnalysisRecord:
    """Analyze one file and return its evidentiary record.

    Args:
        byte_source: A ``ChunkSource``, a filesystem path, or the raw bytes.
        declared_attributes: Attributes claimed by the uploader; missing
            values are derived from the source.
        chunk_size: Chunk size used when ``byte_source`` is not a source yet.
        assembler: Assembler to use; a default one is built when omitted.
        cancel: Optional cancellation event checked at chunk boundaries.

    Raises:
        AnalysisError: When the analysis cannot produce a complete record.
    """
    source = open_source(byte_source, chunk_size=chunk_size)
    owned = source is not byte_source
    try:
        attributes = _resolve_attributes(source, declared_attributes)
        return (assembler or AnalysisAssembler()).analyze(source, attributes, cancel=cancel)
    finally:
        if owned:
            source.close()


__all__ = ["AnalysisAssembler", "ByteSource", "analyze", "open_source"]
