"""Tests for metadata extraction and category dispatch."""

from __future__ import annotations

import io
import struct
import wave
import zipfile
from typing import Any, BinaryIO

import pytest
from PIL import ExifTags, Image

from forensight.analysis import BytesChunkSource, ContentCategory, MetadataDispatcher, dms_to_decimal
from forensight.analysis.extractors import (
    ImageExtractor,
    MetadataExtractor,
    _format_exposure,
    parse_pdf_date,
)


def _jpeg_with_exif() -> bytes:
    exif = Image.Exif()
    exif[ExifTags.Base.Make] = "Canon"
    exif[ExifTags.Base.Model] = "EOS 5D"
    exif[ExifTags.Base.Orientation] = 6
    buffer = io.BytesIO()
    Image.new("RGB", (32, 16), "red").save(buffer, "JPEG", exif=exif)
    return buffer.getvalue()


def _png(width: int, height: int) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height)).save(buffer, "PNG")
    return buffer.getvalue()


def _pdf() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (20, 20), "white").save(
        buffer, "PDF", title="Quarterly report", author="Records Office"
    )
    return buffer.getvalue()


def _wav() -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as handle:
        handle.setnchannels(1)
        handle.setsampwidth(2)
        handle.setframerate(8000)
        handle.writeframes(b"\x00\x00" * 8000)
    return buffer.getvalue()


def _docx() -> bytes:
    core = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<cp:coreProperties'
        ' xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties"'
        ' xmlns:dc="http://purl.org/dc/elements/1.1/"'
        ' xmlns:dcterms="http://purl.org/dc/terms/">'
        "<dc:title>Incident summary</dc:title>"
        "<dc:creator>J. Doe</dc:creator>"
        "<cp:keywords>breach, timeline</cp:keywords>"
        "<cp:revision>3</cp:revision>"
        "<dcterms:created>2024-03-01T10:00:00Z</dcterms:created>"
        "</cp:coreProperties>"
    )
    app = (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties">'
        "<Application>Microsoft Office Word</Application>"
        "<Pages>4</Pages>"
        "</Properties>"
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr("word/document.xml", "<document/>")
        archive.writestr("docProps/core.xml", core)
        archive.writestr("docProps/app.xml", app)
    return buffer.getvalue()


def _avi_header() -> bytes:
    avih = struct.pack("<10I", 40_000, 0, 0, 0, 250, 0, 1, 0, 640, 480)
    return (
        b"RIFF"
        + struct.pack("<I", 1024)
        + b"AVI LIST"
        + struct.pack("<I", 192)
        + b"hdrlavih"
        + struct.pack("<I", 56)
        + avih
    )


def _extract(data: bytes, declared: str | None = None, **kwargs: Any):
    return MetadataDispatcher(**kwargs).extract(BytesChunkSource(data), declared)


def test_dms_to_decimal_respects_hemisphere() -> None:
    assert dms_to_decimal((40, 26, 46), "N") == pytest.approx(40.446111, abs=1e-6)
    assert dms_to_decimal((40, 26, 46), "S") == pytest.approx(-40.446111, abs=1e-6)
    assert dms_to_decimal((79, 58, 56), b"W") < 0


def test_dms_to_decimal_rejects_incomplete_values() -> None:
    with pytest.raises(ValueError):
        dms_to_decimal((40, 26), "N")


def test_gps_attributes_convert_coordinates() -> None:
    gps = {
        ExifTags.GPS.GPSLatitudeRef: "N",
        ExifTags.GPS.GPSLatitude: (40.0, 26.0, 46.0),
        ExifTags.GPS.GPSLongitudeRef: "W",
        ExifTags.GPS.GPSLongitude: (79.0, 58.0, 56.0),
        ExifTags.GPS.GPSAltitudeRef: b"\x00",
        ExifTags.GPS.GPSAltitude: 300.5,
    }

    attributes = ImageExtractor.gps_attributes(gps)

    assert attributes["gps_latitude"] == pytest.approx(40.446111, abs=1e-6)
    assert attributes["gps_longitude"] == pytest.approx(-79.982222, abs=1e-6)
    assert attributes["gps_altitude"] == pytest.approx(300.5)


def test_gps_attributes_omit_unparsable_coordinates() -> None:
    gps = {ExifTags.GPS.GPSLatitudeRef: "N", ExifTags.GPS.GPSLatitude: (40.0,)}

    assert ImageExtractor.gps_attributes(gps) == {}


def test_jpeg_exif_fields_are_extracted() -> None:
    result = _extract(_jpeg_with_exif(), "image/jpeg")

    assert result.category is ContentCategory.IMAGE
    assert result.routed_by == "content"
    assert result.attributes["width"] == 32
    assert result.attributes["height"] == 16
    assert result.attributes["make"] == "Canon"
    assert result.attributes["model"] == "EOS 5D"
    assert result.attributes["orientation"] == "Rotate 90 CW"
    assert "gps_latitude" not in result.attributes


def test_png_without_exif_reports_dimensions_only() -> None:
    result = _extract(_png(7, 5))

    assert result.mime_type == "image/png"
    assert result.attributes["width"] == 7
    assert result.attributes["height"] == 5
    assert "make" not in result.attributes


def test_pdf_document_info_is_extracted() -> None:
    result = _extract(_pdf(), "application/pdf")

    assert result.category is ContentCategory.DOCUMENT
    assert result.attributes["page_count"] == 1
    assert result.attributes["title"] == "Quarterly report"
    assert result.attributes["author"] == "Records Office"


def test_docx_core_properties_are_extracted() -> None:
    result = _extract(_docx())

    assert result.category is ContentCategory.DOCUMENT
    attributes = result.attributes
    assert attributes["document_kind"] == "wordprocessing"
    assert attributes["title"] == "Incident summary"
    assert attributes["author"] == "J. Doe"
    assert attributes["keywords"] == ["breach", "timeline"]
    assert attributes["revision"] == 3
    assert attributes["application"] == "Microsoft Office Word"
    assert attributes["page_count"] == 4


def test_wav_stream_properties_are_extracted() -> None:
    result = _extract(_wav(), "audio/wav")

    assert result.category is ContentCategory.AUDIO
    assert result.attributes["sample_rate"] == 8000
    assert result.attributes["channels"] == 1


def test_avi_header_is_parsed() -> None:
    result = _extract(_avi_header(), "video/x-msvideo")

    assert result.category is ContentCategory.VIDEO
    assert result.attributes == {
        "width": 640,
        "height": 480,
        "frame_count": 250,
        "stream_count": 1,
        "frame_rate": 25.0,
        "duration": 10.0,
    }


def test_declared_type_routes_unrecognized_content() -> None:
    result = _extract(b"not really an image", "image/png")

    assert result.category is ContentCategory.IMAGE
    assert result.routed_by == "declared"
    assert result.is_empty


def test_sniffed_type_wins_over_declared_type() -> None:
    result = _extract(_png(3, 3), "application/pdf")

    assert result.category is ContentCategory.IMAGE
    assert result.routed_by == "content"


def test_unknown_content_yields_empty_set() -> None:
    result = _extract(b"plain text", "text/plain")

    assert result.category is ContentCategory.UNKNOWN
    assert result.routed_by == "none"
    assert result.is_empty


def test_failing_extractor_degrades_to_empty_set(caplog: pytest.LogCaptureFixture) -> None:
    class _Broken(MetadataExtractor):
        category = ContentCategory.IMAGE

        def extract(self, stream: BinaryIO, mime_type: str) -> dict[str, Any]:
            raise RuntimeError("corrupt")

    with caplog.at_level("WARNING", logger="forensight"):
        result = _extract(_png(2, 2), extractors={ContentCategory.IMAGE: _Broken()})

    assert result.category is ContentCategory.IMAGE
    assert result.is_empty
    assert "corrupt" in caplog.text


def test_disabled_category_is_not_extracted() -> None:
    result = _extract(_png(2, 2), disabled_categories=["image"])

    assert result.category is ContentCategory.IMAGE
    assert result.is_empty


def test_parse_pdf_date() -> None:
    assert parse_pdf_date("D:20240301101500+02'00'") == "2024-03-01T10:15:00+02:00"
    assert parse_pdf_date("D:20240301") == "2024-03-01T00:00:00"
    assert parse_pdf_date("yesterday") == "yesterday"


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (1 / 125, "1/125"),
        (0.008, "1/125"),
        (1 / 3, "1/3"),
        (0.8, "0.8"),
        (0.4, "0.4"),
        (0.3, "0.3"),
        (2.5, "2.5"),
        (1.0, "1"),
    ],
)
def test_exposure_time_formatting(seconds: float, expected: str) -> None:
    assert _format_exposure(seconds) == expected


def test_identified_content_without_category_is_not_rerouted() -> None:
    archive = io.BytesIO()
    with zipfile.ZipFile(archive, "w") as handle:
        handle.writestr("data.csv", "a,b\n1,2\n")

    result = _extract(archive.getvalue(), "image/jpeg")

    assert result.mime_type == "application/zip"
    assert result.category is ContentCategory.UNKNOWN
    assert result.routed_by == "content"
    assert result.is_empty


def test_incomplete_extractor_cannot_be_instantiated() -> None:
    class _Incomplete(MetadataExtractor):
        category = ContentCategory.AUDIO

    with pytest.raises(TypeError):
        _Incomplete()
