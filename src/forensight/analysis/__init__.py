"""Streaming file-integrity and metadata-extraction pipeline."""

from .detectors import ContentSniffer, SniffResult
from .digests import IncrementalDigest
from .errors import (
    AnalysisCancelled,
    AnalysisError,
    DigestFinalizedError,
    DigestStateError,
    InvalidAttributesError,
    ReadError,
    UnsupportedAlgorithm,
)
from .extractors import MetadataDispatcher, dms_to_decimal
from .models import (
    AnalysisRecord,
    ByteChunk,
    ContentCategory,
    FileAttributes,
    HashResult,
    MetadataAttributeSet,
    SignatureReason,
    SignatureVerdict,
)
from .pipeline import AnalysisAssembler, analyze
from .signatures import SignatureInspector
from .sources import DEFAULT_CHUNK_SIZE, BytesChunkSource, ChunkSource, FileChunkSource
from .worker import AnalysisWorker

__all__ = [
    "AnalysisAssembler",
    "AnalysisCancelled",
    "AnalysisError",
    "AnalysisRecord",
    "AnalysisWorker",
    "ByteChunk",
    "BytesChunkSource",
    "ChunkSource",
    "ContentCategory",
    "ContentSniffer",
    "DEFAULT_CHUNK_SIZE",
    "DigestFinalizedError",
    "DigestStateError",
    "FileAttributes",
    "FileChunkSource",
    "HashResult",
    "InvalidAttributesError",
    "IncrementalDigest",
    "MetadataAttributeSet",
    "MetadataDispatcher",
    "ReadError",
    "SignatureInspector",
    "SignatureReason",
    "SignatureVerdict",
    "SniffResult",
    "UnsupportedAlgorithm",
    "analyze",
    "dms_to_decimal",
]
