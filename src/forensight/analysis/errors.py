"""Analysis errors."""


class AnalysisError(Exception):
    """Base exception for failures that abort an analysis."""


class ReadError(AnalysisError):
    """Raised when the byte source cannot be read."""


class UnsupportedAlgorithm(AnalysisError):
    """Raised when a digest algorithm is unavailable in this environment."""


class DigestStateError(AnalysisError):
    """Raised when an incremental digest is driven out of order."""


class DigestFinalizedError(DigestStateError):
    """Raised when a finalized digest is updated or finalized again."""


class AnalysisCancelled(AnalysisError):
    """Raised when an analysis is cancelled at a chunk boundary."""


class InvalidAttributesError(AnalysisError):
    """Raised when declared file attributes fail validation."""


__all__ = [
    "AnalysisError",
    "ReadError",
    "UnsupportedAlgorithm",
    "DigestStateError",
    "DigestFinalizedError",
    "AnalysisCancelled",
    "InvalidAttributesError",
]
