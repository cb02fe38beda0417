"""Declared-type signature verification."""

from __future__ import annotations

from typing import Dict, Mapping

from .models import SignatureReason, SignatureVerdict

KNOWN_SIGNATURES: Dict[str, bytes] = {
    "image/jpeg": b"\xff\xd8\xff",
    "image/png": b"\x89PNG",
    "application/pdf": b"%PDF",
    "image/gif": b"GIF8",
    "image/bmp": b"BM",
    "image/x-icon": b"\x00\x00\x01\x00",
    "image/vnd.adobe.photoshop": b"8BPS",
    "application/zip": b"PK\x03\x04",
    "audio/flac": b"fLaC",
    "audio/ogg": b"OggS",
}

_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-png": "image/png",
    "image/x-ms-bmp": "image/bmp",
    "image/vnd.microsoft.icon": "image/x-icon",
    "application/x-pdf": "application/pdf",
    "application/x-zip-compressed": "application/zip",
    "audio/x-flac": "audio/flac",
    "audio/x-wav": "audio/wav",
    "audio/wave": "audio/wav",
    "audio/x-aiff": "audio/aiff",
}


def normalize_mime(value: str | None) -> str:
    """Lowercase a MIME type, strip parameters and resolve common aliases."""
    if not value:
        return ""
    base = value.split(";", 1)[0].strip().lower()
    return _ALIASES.get(base, base)


class SignatureInspector:
    """Compare a file's leading bytes with the signature of its declared type.

    A declared type without a table entry yields ``no_known_signature``, which
    is inconclusive and never counts as a match.
    """

    def __init__(self, signatures: Mapping[str, bytes] | None = None) -> None:
        table = KNOWN_SIGNATURES if signatures is None else signatures
        self._signatures = {normalize_mime(key): bytes(value) for key, value in table.items()}

    @property
    def signature_length(self) -> int:
        """Return the number of prefix bytes needed to check any entry."""
        return max((len(sig) for sig in self._signatures.values()), default=0)

    def expected_for(self, declared_type: str | None) -> bytes | None:
        return self._signatures.get(normalize_mime(declared_type))

    def inspect(self, prefix: bytes, declared_type: str | None) -> SignatureVerdict:
        """Return the verdict for ``prefix`` against ``declared_type``."""
        normalized = normalize_mime(declared_type)
        expected = self._signatures.get(normalized)
        if expected is None:
            return SignatureVerdict(
                matched=False,
                reason=SignatureReason.NO_KNOWN_SIGNATURE,
                declared_type=normalized,
            )

        matched = prefix[: len(expected)] == expected
        return SignatureVerdict(
            matched=matched,
            reason=SignatureReason.MATCHED if matched else SignatureReason.MISMATCHED,
            declared_type=normalized,
            expected=expected.hex(),
        )


__all__ = ["KNOWN_SIGNATURES", "SignatureInspector", "normalize_mime"]
