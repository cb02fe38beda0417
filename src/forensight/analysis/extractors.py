"""Type-specific metadata extraction and category dispatch."""

from __future__ import annotations

import logging
import math
import re
import struct
import zipfile
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from fractions import Fraction
from typing import Any, BinaryIO, Callable, Dict, Iterable, Mapping, Sequence, Tuple
from xml.etree import ElementTree

import mutagen
import pdfplumber
from PIL import ExifTags, Image

from .detectors import UNKNOWN, ContentSniffer, category_for_mime
from .models import ContentCategory, MetadataAttributeSet
from .signatures import normalize_mime
from .sources import ChunkSource

LOGGER = logging.getLogger(__name__)

Attributes = Dict[str, Any]

_ORIENTATIONS = {
    1: "Horizontal (normal)",
    2: "Mirror horizontal",
    3: "Rotate 180",
    4: "Mirror vertical",
    5: "Mirror horizontal and rotate 270 CW",
    6: "Rotate 90 CW",
    7: "Mirror horizontal and rotate 90 CW",
    8: "Rotate 270 CW",
}


def _collect(attributes: Attributes, name: str, getter: Callable[[], Any]) -> None:
    """Store ``getter()`` under ``name``; a missing or unparsable value omits the field."""
    try:
        value = getter()
    except KeyError:
        return
    except Exception as exc:
        LOGGER.debug("Skipping metadata field %s: %s", name, exc)
        return
    if value is None or value == "" or value == []:
        return
    attributes[name] = value


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return str(value).strip("\x00 ").strip()


def _first(values: Any) -> str:
    if isinstance(values, (list, tuple)):
        values = values[0]
    return _text(values)


def dms_to_decimal(dms: Sequence[Any], ref: Any) -> float:
    """Convert degrees/minutes/seconds to signed decimal degrees.

    The result is ``deg + min/60 + sec/3600``, negated when ``ref`` is the
    southern or western hemisphere.

    Raises:
        ValueError: If fewer than three components are given or a component
            is not a finite number.
    """
    if len(dms) < 3:
        raise ValueError(f"Expected degrees, minutes and seconds, got {dms!r}.")
    degrees, minutes, seconds = (float(part) for part in dms[:3])
    value = degrees + minutes / 60 + seconds / 3600
    if not math.isfinite(value):
        raise ValueError(f"Non-finite coordinate {dms!r}.")
    if _text(ref).upper() in ("S", "W"):
        value = -value
    return value


def _format_exposure(value: Any) -> str:
    seconds = float(value)
    if not math.isfinite(seconds) or seconds <= 0:
        raise ValueError(f"Invalid exposure time {value!r}.")
    if seconds >= 1:
        return f"{seconds:g}"
    fraction = Fraction(seconds).limit_denominator(1_000_000)
    if fraction.numerator == 1:
        return f"1/{fraction.denominator}"
    return f"{seconds:g}"


def _finite(value: Any, digits: int = 2) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Non-finite value {value!r}.")
    return round(number, digits)


class MetadataExtractor(ABC):
    """Extract structured attributes for one content category."""

    category = ContentCategory.UNKNOWN

    @abstractmethod
    def extract(self, stream: BinaryIO, mime_type: str) -> Attributes:
        """Return attributes parsed from ``stream``.

        Args:
            stream: Seekable binary stream positioned at the start of the file.
            mime_type: MIME type the dispatcher routed on.

        Returns:
            Attributes: Parsed fields; fields that cannot be read are omitted.
        """


class ImageExtractor(MetadataExtractor):
    """Read dimensions and EXIF tags with Pillow."""

    category = ContentCategory.IMAGE

    def extract(self, stream: BinaryIO, mime_type: str) -> Attributes:
        attributes: Attributes = {}
        with Image.open(stream) as img:
            width, height = img.size
            attributes["width"] = width
            attributes["height"] = height
            _collect(attributes, "format", lambda: img.format)
            _collect(attributes, "mode", lambda: img.mode)
            attributes.update(self.exif_attributes(img.getexif()))
        return attributes

    @classmethod
    def exif_attributes(cls, exif: Image.Exif) -> Attributes:
        """Read camera, capture and GPS fields from an EXIF block."""
        attributes: Attributes = {}
        base = ExifTags.Base
        _collect(attributes, "make", lambda: _text(exif[base.Make]))
        _collect(attributes, "model", lambda: _text(exif[base.Model]))
        _collect(
            attributes,
            "orientation",
            lambda: _ORIENTATIONS.get(int(exif[base.Orientation]), str(exif[base.Orientation])),
        )
        _collect(attributes, "software", lambda: _text(exif[base.Software]))
        _collect(attributes, "date_time", lambda: _text(exif[base.DateTime]))

        details = _sub_ifd(exif, ExifTags.IFD.Exif)
        _collect(attributes, "date_time_original", lambda: _text(details[base.DateTimeOriginal]))
        _collect(attributes, "exposure_time", lambda: _format_exposure(details[base.ExposureTime]))
        _collect(attributes, "f_number", lambda: _finite(details[base.FNumber]))
        _collect(attributes, "iso", lambda: int(_first_number(details[base.ISOSpeedRatings])))
        _collect(attributes, "focal_length", lambda: _finite(details[base.FocalLength]))

        attributes.update(cls.gps_attributes(_sub_ifd(exif, ExifTags.IFD.GPSInfo)))
        return attributes

    @staticmethod
    def gps_attributes(gps: Mapping[int, Any]) -> Attributes:
        """Convert a GPS IFD into signed decimal coordinates."""
        attributes: Attributes = {}
        if not gps:
            return attributes
        tags = ExifTags.GPS
        _collect(
            attributes,
            "gps_latitude",
            lambda: dms_to_decimal(gps[tags.GPSLatitude], gps[tags.GPSLatitudeRef]),
        )
        _collect(
            attributes,
            "gps_longitude",
            lambda: dms_to_decimal(gps[tags.GPSLongitude], gps[tags.GPSLongitudeRef]),
        )
        _collect(attributes, "gps_altitude", lambda: _altitude(gps))
        return attributes


def _sub_ifd(exif: Image.Exif, tag: int) -> Mapping[int, Any]:
    try:
        return exif.get_ifd(tag)
    except Exception as exc:
        LOGGER.debug("Unreadable EXIF sub-IFD %#x: %s", tag, exc)
        return {}


def _first_number(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0]
    return value


def _altitude(gps: Mapping[int, Any]) -> float:
    altitude = _finite(gps[ExifTags.GPS.GPSAltitude])
    ref = gps.get(ExifTags.GPS.GPSAltitudeRef, 0)
    if isinstance(ref, bytes):
        ref = ref[0] if ref else 0
    return -altitude if int(ref) == 1 else altitude


_PDF_DATE = re.compile(
    r"^D:(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?(?:([Zz+\-])(\d{2})?'?(\d{2})?'?)?"
)

_OOXML_NS = {
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "app": "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties",
}

_OOXML_KINDS = (
    ("word/", "wordprocessing"),
    ("xl/", "spreadsheet"),
    ("ppt/", "presentation"),
)


def parse_pdf_date(value: str) -> str:
    """Convert a PDF date string (``D:YYYYMMDDHHmmSSOHH'mm'``) to ISO 8601.

    Strings that do not follow the PDF date syntax are returned unchanged.
    """
    match = _PDF_DATE.match(value.strip())
    if not match:
        return value
    year, month, day, hour, minute, second, sign, tz_hour, tz_minute = match.groups()
    tzinfo = None
    if sign in ("Z", "z"):
        tzinfo = timezone.utc
    elif sign:
        offset = timedelta(hours=int(tz_hour or 0), minutes=int(tz_minute or 0))
        tzinfo = timezone(-offset if sign == "-" else offset)
    stamp = datetime(
        int(year),
        int(month or 1),
        int(day or 1),
        int(hour or 0),
        int(minute or 0),
        int(second or 0),
        tzinfo=tzinfo,
    )
    return stamp.isoformat()


def _split_keywords(value: Any) -> list[str]:
    return [part.strip() for part in re.split(r"[,;]", _text(value)) if part.strip()]


class DocumentExtractor(MetadataExtractor):
    """Read PDF document info with pdfplumber and OOXML package properties."""

    category = ContentCategory.DOCUMENT

    def extract(self, stream: BinaryIO, mime_type: str) -> Attributes:
        if mime_type == "application/pdf":
            return self._extract_pdf(stream)
        if mime_type.startswith("application/vnd.openxmlformats-officedocument"):
            return self._extract_ooxml(stream)
        return {}

    def _extract_pdf(self, stream: BinaryIO) -> Attributes:
        attributes: Attributes = {}
        with pdfplumber.open(stream) as pdf:
            info = pdf.metadata or {}
            _collect(attributes, "page_count", lambda: len(pdf.pages))

        for key, name in (
            ("Title", "title"),
            ("Author", "author"),
            ("Subject", "subject"),
            ("Creator", "application"),
            ("Producer", "producer"),
        ):
            _collect(attributes, name, lambda key=key: _text(info[key]))
        _collect(attributes, "keywords", lambda: _split_keywords(info["Keywords"]))
        _collect(attributes, "creation_date", lambda: parse_pdf_date(_text(info["CreationDate"])))
        _collect(attributes, "modification_date", lambda: parse_pdf_date(_text(info["ModDate"])))
        return attributes

    def _extract_ooxml(self, stream: BinaryIO) -> Attributes:
        attributes: Attributes = {}
        with zipfile.ZipFile(stream) as archive:
            names = archive.namelist()
            core = self._read_xml(archive, names, "docProps/core.xml")
            app = self._read_xml(archive, names, "docProps/app.xml")

        _collect(
            attributes,
            "document_kind",
            lambda: next(kind for prefix, kind in _OOXML_KINDS if any(n.startswith(prefix) for n in names)),
        )
        if core is not None:
            for path, name in (
                ("dc:title", "title"),
                ("dc:creator", "author"),
                ("dc:subject", "subject"),
                ("cp:lastModifiedBy", "last_modified_by"),
                ("dcterms:created", "creation_date"),
                ("dcterms:modified", "modification_date"),
            ):
                _collect(attributes, name, lambda path=path: _xml_text(core, path))
            _collect(attributes, "keywords", lambda: _split_keywords(_xml_text(core, "cp:keywords")))
            _collect(attributes, "revision", lambda: int(_xml_text(core, "cp:revision")))
        if app is not None:
            _collect(attributes, "application", lambda: _xml_text(app, "app:Application"))
            _collect(attributes, "application_version", lambda: _xml_text(app, "app:AppVersion"))
            _collect(attributes, "page_count", lambda: int(_xml_text(app, "app:Pages")))
            _collect(attributes, "slide_count", lambda: int(_xml_text(app, "app:Slides")))
        return attributes

    @staticmethod
    def _read_xml(archive: zipfile.ZipFile, names: Iterable[str], member: str) -> ElementTree.Element | None:
        if member not in names:
            return None
        return ElementTree.fromstring(archive.read(member))


def _xml_text(root: ElementTree.Element, path: str) -> str:
    node = root.find(path, _OOXML_NS)
    if node is None or node.text is None:
        raise KeyError(path)
    return node.text.strip()


def _stream_fields(media: Any, attributes: Attributes, *, codec_name: str = "codec") -> None:
    info = media.info
    _collect(attributes, "format", lambda: type(media).__name__)
    _collect(attributes, "duration", lambda: _finite(info.length, 3))
    _collect(attributes, "bitrate", lambda: int(info.bitrate) or None)
    _collect(attributes, codec_name, lambda: _text(info.codec))


class AudioExtractor(MetadataExtractor):
    """Read stream properties and common tags with mutagen."""

    category = ContentCategory.AUDIO

    def extract(self, stream: BinaryIO, mime_type: str) -> Attributes:
        attributes: Attributes = {}
        audio = mutagen.File(stream, easy=True)
        if audio is None:
            return attributes

        _stream_fields(audio, attributes)
        info = audio.info
        _collect(attributes, "sample_rate", lambda: int(info.sample_rate) or None)
        _collect(attributes, "channels", lambda: int(info.channels) or None)
        _collect(attributes, "bits_per_sample", lambda: int(info.bits_per_sample) or None)

        tags = audio.tags
        if tags is not None:
            for key in ("title", "artist", "album", "date", "genre"):
                _collect(attributes, key, lambda key=key: _first(tags[key]))
        return attributes


class VideoExtractor(MetadataExtractor):
    """Read container properties for MP4/ASF via mutagen and AVI headers directly."""

    category = ContentCategory.VIDEO

    def extract(self, stream: BinaryIO, mime_type: str) -> Attributes:
        if mime_type == "video/x-msvideo":
            return self._extract_avi(stream)
        attributes: Attributes = {}
        media = mutagen.File(stream)
        if media is None:
            return attributes
        # mutagen describes the first audio track of MP4 files.
        _stream_fields(media, attributes, codec_name="audio_codec")
        return attributes

    @staticmethod
    def _extract_avi(stream: BinaryIO) -> Attributes:
        attributes: Attributes = {}
        head = stream.read(72)
        if len(head) < 72 or head[12:16] != b"LIST" or head[20:28] != b"hdrlavih":
            return attributes
        (
            micro_sec_per_frame,
            _max_bytes_per_sec,
            _padding,
            _flags,
            total_frames,
            _initial_frames,
            streams,
            _buffer_size,
            width,
            height,
        ) = struct.unpack("<10I", head[32:72])
        attributes["width"] = width
        attributes["height"] = height
        attributes["frame_count"] = total_frames
        attributes["stream_count"] = streams
        if micro_sec_per_frame:
            attributes["frame_rate"] = round(1_000_000 / micro_sec_per_frame, 3)
            attributes["duration"] = round(total_frames * micro_sec_per_frame / 1_000_000, 3)
        return attributes


def default_extractors() -> Dict[ContentCategory, MetadataExtractor]:
    """Return one handler per content category with a parser."""
    return {
        extractor.category: extractor
        for extractor in (ImageExtractor(), DocumentExtractor(), AudioExtractor(), VideoExtractor())
    }


class MetadataDispatcher:
    """Sniff the real content type and delegate to the matching extractor.

    Any identified content type takes precedence over the declared type, even
    one without a category such as a plain zip; the declared type only routes
    extraction when the content cannot be identified at all. Any
    extractor failure degrades to an empty attribute set.
    """

    def __init__(
        self,
        sniffer: ContentSniffer | None = None,
        extractors: Mapping[ContentCategory, MetadataExtractor] | None = None,
        *,
        enabled: bool = True,
        disabled_categories: Iterable[ContentCategory | str] = (),
    ) -> None:
        self.sniffer = sniffer or ContentSniffer()
        self.extractors = dict(extractors) if extractors is not None else default_extractors()
        self.enabled = enabled
        self.disabled_categories = {ContentCategory(item) for item in disabled_categories}

    @property
    def prefix_size(self) -> int:
        return self.sniffer.prefix_size

    def route(self, prefix: bytes, declared_type: str | None) -> Tuple[str, ContentCategory, str]:
        """Return the MIME type, category and routing origin for a file."""
        sniffed = self.sniffer.sniff(prefix)
        if sniffed != UNKNOWN:
            return sniffed.mime_type, sniffed.category, "content"
        declared = normalize_mime(declared_type)
        declared_category = category_for_mime(declared)
        if declared_category is not ContentCategory.UNKNOWN:
            return declared, declared_category, "declared"
        return sniffed.mime_type, ContentCategory.UNKNOWN, "none"

    def extract(
        self,
        source: ChunkSource,
        declared_type: str | None,
        *,
        prefix: bytes | None = None,
    ) -> MetadataAttributeSet:
        """Return the metadata attribute set for ``source``.

        Args:
            source: Byte source of the file.
            declared_type: MIME type claimed by the uploader.
            prefix: Leading bytes already read by the caller, if any.
        """
        if prefix is None:
            prefix = source.read_prefix(self.prefix_size)
        mime_type, category, routed_by = self.route(prefix, declared_type)
        result = MetadataAttributeSet(category=category, mime_type=mime_type, routed_by=routed_by)

        extractor = self.extractors.get(category)
        if extractor is None or not self.enabled or category in self.disabled_categories:
            return result

        try:
            with source.open_stream() as stream:
                attributes = extractor.extract(stream, mime_type)
        except Exception as exc:
            LOGGER.warning(
                "%s metadata extraction failed for %s: %s", category.value, source.name, exc
            )
            return result

        return MetadataAttributeSet(
            category=category,
            mime_type=mime_type,
            routed_by=routed_by,
            attributes=attributes,
        )


__all__ = [
    "MetadataExtractor",
    "ImageExtractor",
    "DocumentExtractor",
    "AudioExtractor",
    "VideoExtractor",
    "MetadataDispatcher",
    "default_extractors",
    "dms_to_decimal",
    "parse_pdf_date",
]
