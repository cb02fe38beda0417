"""Data models produced by the analysis pipeline."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


@dataclass(frozen=True)
class ByteChunk:
    """A bounded slice of a file's bytes starting at ``offset``."""

    offset: int
    data: bytes

    @property
    def end(self) -> int:
        """Return the offset one past the last byte in the chunk."""
        return self.offset + len(self.data)

    def __len__(self) -> int:
        return len(self.data)


class ContentCategory(str, Enum):
    """Closed set of content categories used to route metadata extraction."""

    IMAGE = "image"
    DOCUMENT = "document"
    AUDIO = "audio"
    VIDEO = "video"
    UNKNOWN = "unknown"


class SignatureReason(str, Enum):
    """Outcome of comparing a file prefix against a known signature."""

    NO_KNOWN_SIGNATURE = "no_known_signature"
    MATCHED = "matched"
    MISMATCHED = "mismatched"


class ForensightModel(BaseModel):
    """Shared configuration for immutable analysis models."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class HashResult(ForensightModel):
    """Hex-encoded content digests.

    Attributes:
        md5: 128-bit digest, 32 lowercase hex characters.
        sha256: 256-bit digest, 64 lowercase hex characters.
    """

    md5: str = Field(pattern=r"^[0-9a-f]{32}$")
    sha256: str = Field(pattern=r"^[0-9a-f]{64}$")


class SignatureVerdict(ForensightModel):
    """Result of checking the declared type against the file's leading bytes.

    Attributes:
        matched: True only when a known signature matched byte-for-byte.
        reason: Detailed verdict; ``no_known_signature`` is inconclusive.
        declared_type: Normalized declared MIME type that was checked.
        expected: Hex of the expected signature when one is known.
    """

    matched: bool
    reason: SignatureReason
    declared_type: str = ""
    expected: Optional[str] = None

    @property
    def inconclusive(self) -> bool:
        """Return True when the declared type could not be verified."""
        return self.reason is SignatureReason.NO_KNOWN_SIGNATURE


class MetadataAttributeSet(ForensightModel):
    """Category-tagged mapping of extracted metadata attributes.

    Attributes:
        category: Content category the attributes were extracted for.
        mime_type: MIME type used to route extraction.
        routed_by: Whether routing used sniffed content or the declared type.
        attributes: Extracted fields; absent values are omitted.
    """

    category: ContentCategory = ContentCategory.UNKNOWN
    mime_type: str = ""
    routed_by: Literal["content", "declared", "none"] = "none"
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("attributes")
    @classmethod
    def _drop_missing(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        return {key: item for key, item in value.items() if item is not None}

    @property
    def is_empty(self) -> bool:
        """Return True when no attributes were extracted."""
        return not self.attributes


class FileAttributes(ForensightModel):
    """Basic attributes describing the analyzed file.

    Attributes:
        name: File name as supplied by the uploader.
        size: Size in bytes.
        declared_type: MIME type claimed by the uploader; may be empty.
        last_modified: Last modification time when known.
    """

    name: str
    size: int = Field(ge=0)
    declared_type: str = ""
    last_modified: Optional[datetime] = None

    @classmethod
    def from_path(cls, path: Path, declared_type: str | None = None) -> "FileAttributes":
        """Build attributes for a file on disk.

        When no declared type is given it is guessed from the file extension,
        mirroring what an upload form would report.
        """
        stat = path.stat()
        if declared_type is None:
            declared_type = mimetypes.guess_type(path.name)[0] or ""
        return cls(
            name=path.name,
            size=stat.st_size,
            declared_type=declared_type,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )


class AnalysisRecord(ForensightModel):
    """Immutable evidentiary record for one analyzed file."""

    id: str
    created_at: datetime
    file_attributes: FileAttributes
    hash: HashResult
    signature: SignatureVerdict
    metadata: MetadataAttributeSet


__all__ = [
    "ByteChunk",
    "ContentCategory",
    "SignatureReason",
    "HashResult",
    "SignatureVerdict",
    "MetadataAttributeSet",
    "FileAttributes",
    "AnalysisRecord",
]
