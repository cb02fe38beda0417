"""Content-type sniffing from magic numbers."""

from __future__ import annotations

import logging
from typing import NamedTuple

import filetype

from .models import ContentCategory
from .signatures import normalize_mime

LOGGER = logging.getLogger(__name__)

DEFAULT_SNIFF_BYTES = 4096

_DOCUMENT_MIME_HINTS = ("document", "spreadsheet", "presentation", "msword", "ms-excel", "ms-powerpoint")

# Valid BITMAPINFOHEADER family sizes.
_BMP_DIB_SIZES = {12, 16, 40, 52, 56, 64, 108, 124}


class SniffResult(NamedTuple):
    """MIME type and category inferred from file content."""

    mime_type: str
    category: ContentCategory


UNKNOWN = SniffResult("application/octet-stream", ContentCategory.UNKNOWN)


def category_for_mime(mime_type: str | None) -> ContentCategory:
    """Map a MIME type string to a content category."""
    mime = normalize_mime(mime_type)
    if not mime:
        return ContentCategory.UNKNOWN
    if mime.startswith("image/"):
        return ContentCategory.IMAGE
    if mime.startswith("audio/"):
        return ContentCategory.AUDIO
    if mime.startswith("video/"):
        return ContentCategory.VIDEO
    if mime in {"application/pdf", "application/rtf"} or any(
        hint in mime for hint in _DOCUMENT_MIME_HINTS
    ):
        return ContentCategory.DOCUMENT
    return ContentCategory.UNKNOWN


def _plausible_bmp(head: bytes) -> bool:
    if len(head) < 18 or head[6:10] != b"\x00\x00\x00\x00":
        return False
    return int.from_bytes(head[14:18], "little") in _BMP_DIB_SIZES


def _plausible_frame_sync(head: bytes) -> bool:
    """Check an MPEG/ADTS frame header beyond its sync bits."""
    if head.startswith(b"ID3"):
        return True
    if len(head) < 4:
        return False
    if head[1] & 0xF6 == 0xF0:
        # ADTS: sampling frequency index 13-15 is reserved.
        return (head[2] >> 2) & 0x0F < 13
    bitrate_index = head[2] >> 4
    sample_rate_index = (head[2] >> 2) & 0x03
    return bitrate_index not in (0x0, 0xF) and sample_rate_index != 0x03


_VALIDATORS = {
    "image/bmp": _plausible_bmp,
    "audio/mpeg": _plausible_frame_sync,
    "audio/aac": _plausible_frame_sync,
}


class ContentSniffer:
    """Identify a file's real type from its leading bytes.

    Matching is done by ``filetype``; signatures that are only a couple of
    bytes long are then checked against the rest of their header. The
    declared type is never consulted here; callers compare the two as
    independent pieces of evidence.
    """

    prefix_size = DEFAULT_SNIFF_BYTES

    def sniff(self, prefix: bytes) -> SniffResult:
        """Return the MIME type and category for ``prefix``."""
        if not prefix:
            return UNKNOWN
        kind = filetype.guess(bytes(prefix))
        if kind is None:
            return UNKNOWN

        mime = normalize_mime(kind.mime)
        validator = _VALIDATORS.get(mime)
        if validator is not None and not validator(prefix):
            LOGGER.debug("Discarding implausible %s match", mime)
            return UNKNOWN
        if mime == "application/zip":
            mime = self._refine_zip(prefix)
        return SniffResult(mime, category_for_mime(mime))

    @staticmethod
    def _refine_zip(head: bytes) -> str:
        if b"[Content_Types].xml" in head:
            return "application/vnd.openxmlformats-officedocument"
        if head[30:38] == b"mimetype" and b"application/vnd.oasis.opendocument" in head[38:120]:
            return "application/vnd.oasis.opendocument"
        return "application/zip"


__all__ = [
    "DEFAULT_SNIFF_BYTES",
    "UNKNOWN",
    "ContentSniffer",
    "SniffResult",
    "category_for_mime",
]
