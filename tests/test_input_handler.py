"""Tests for text extraction and upload staging."""

import io
import os
import time
import zipfile
from unittest.mock import MagicMock

import pytest
from PIL import Image

from document_parser.input_handler import (
    DOCXProcessor,
    ExtractionJob,
    ImageProcessor,
    TextExtractor,
    UploadStorage,
)
from document_parser.ocr_engine import OCRResult
from document_parser.utils.exceptions import (
    NoReadableTextError,
    TextExtractionError,
    UnsupportedFormatError,
    ValidationError,
)


@pytest.fixture
def ocr_engine():
    engine = MagicMock()
    engine.extract.return_value = OCRResult(
        lines=["REPUBLIK ÖSTERREICH", "REISEPASS"],
        languages=["deu", "eng"],
        confidences=[91.0, 87.0],
    )
    return engine


@pytest.fixture
def extractor(ocr_engine):
    return TextExtractor(ocr_engine=ocr_engine)


class TestPDFExtraction:
    """Tests for the PDF text layer."""

    def test_text_from_all_pages(self, extractor, pdf_factory):
        data = pdf_factory("Kreditangebot Bank A", "Sollzinssatz 3,25 %")

        extracted = extractor.extract(data, "pdf")

        assert "Kreditangebot Bank A" in extracted.text
        assert "Sollzinssatz" in extracted.text
        assert extracted.source_format == "pdf"
        assert extracted.metadata["page_count"] == 2

    def test_blank_pdf_has_no_readable_text(self, extractor, pdf_factory):
        with pytest.raises(NoReadableTextError) as exc_info:
            extractor.extract(pdf_factory(""), "pdf")

        assert exc_info.value.message == "PDF contains no readable text"

    def test_corrupt_pdf(self, extractor):
        with pytest.raises(TextExtractionError):
            extractor.extract(b"%PDF-1.4 this is not really a pdf", "pdf")

    def test_declared_format_ignores_case_and_dot(self, extractor, pdf_factory):
        extracted = extractor.extract(pdf_factory("Rechnung 42"), ".PDF")

        assert "Rechnung 42" in extracted.text


class TestDOCXExtraction:
    """Tests for python-docx extraction."""

    def test_paragraphs_then_tables(self, extractor, docx_factory):
        data = docx_factory(
            ["Haushaltsrechnung", "Familie Huber"],
            table=[["Miete", "950"], ["Strom", "80"]],
        )

        extracted = extractor.extract(data, "docx")

        lines = extracted.text.splitlines()
        assert lines[0] == "Haushaltsrechnung"
        assert "Miete\t950" in lines
        assert extracted.warnings == []

    def test_skipped_tables_are_reported(self, docx_factory):
        data = docx_factory(["Einnahmen"], table=[["Gehalt", "3000"]])

        text, warnings, metadata = DOCXProcessor(include_tables=False).extract_text(data)

        assert "Gehalt" not in text
        assert warnings == ["Skipped 1 table(s)"]
        assert metadata["table_rows"] == 0

    def test_empty_docx(self, extractor, docx_factory):
        with pytest.raises(NoReadableTextError) as exc_info:
            extractor.extract(docx_factory([""]), "docx")

        assert exc_info.value.message == "DOCX contains no readable text"

    def test_invalid_docx_bytes(self, extractor):
        with pytest.raises(TextExtractionError) as exc_info:
            extractor.extract(b"not a zip archive", "docx")

        assert exc_info.value.kind == "ExtractionFailed"

    def test_malformed_document_xml(self, extractor, docx_factory):
        source = zipfile.ZipFile(io.BytesIO(docx_factory(["Kaufvertrag", "Kaufpreis 350.000 EUR"])))
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as target:
            for name in source.namelist():
                content = source.read(name)
                if name == "word/document.xml":
                    content = content[:len(content) // 2]
                target.writestr(name, content)

        with pytest.raises(TextExtractionError) as exc_info:
            extractor.extract(buffer.getvalue(), "docx")

        assert exc_info.value.kind == "ExtractionFailed"

class TestImageExtraction:
    """Tests for image OCR dispatch."""

    def test_image_goes_through_ocr(self, extractor, ocr_engine, image_factory):
        extracted = extractor.extract(image_factory(fmt="JPEG"), "jpg")

        assert extracted.text == "REPUBLIK ÖSTERREICH\nREISEPASS"
        assert extracted.metadata["ocr_engine"] == "tesseract"
        assert extracted.metadata["ocr_confidence"] == 89.0
        image = ocr_engine.extract.call_args[0][0]
        assert image.mode == "RGB"

    def test_blank_ocr_result(self, extractor, ocr_engine, image_factory):
        ocr_engine.extract.return_value = OCRResult(lines=[])

        with pytest.raises(NoReadableTextError) as exc_info:
            extractor.extract(image_factory(), "png")

        assert exc_info.value.message == "No text could be extracted from the image"

    def test_undecodable_image(self, extractor, ocr_engine):
        with pytest.raises(TextExtractionError):
            extractor.extract(b"\x89PNG broken", "png")

        ocr_engine.extract.assert_not_called()

    def test_oversized_pixel_count(self, extractor, ocr_engine, image_factory, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

        with pytest.raises(TextExtractionError):
            extractor.extract(image_factory(), "png")

        ocr_engine.extract.assert_not_called()

    def test_unsupported_format(self, extractor):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            extractor.extract(b"GIF89a", "gif")

        assert exc_info.value.message == "Unsupported file type: 'gif'"


class TestImageProcessor:
    """Tests for image normalization."""

    def test_alpha_is_flattened(self, image_factory):
        image, metadata = ImageProcessor().load(image_factory(mode="RGBA"), "png")

        assert image.mode == "RGB"
        assert metadata["original_mode"] == "RGBA"
        assert image.getpixel((0, 0)) == (255, 255, 255)

    def test_large_image_is_downscaled(self, image_factory):
        processor = ImageProcessor(max_width=60, max_height=60)

        image, metadata = processor.load(image_factory(size=(120, 60)), "png")

        assert image.size == (60, 30)
        assert metadata["original_width"] == 120


class TestExtractionJob:
    """Tests for ExtractionJob."""

    def test_from_path(self, tmp_path):
        path = tmp_path / "Angebot.PDF"
        path.write_bytes(b"%PDF")

        job = ExtractionJob.from_path(path, "angebotsvergleich")

        assert job.file_name == "Angebot.PDF"
        assert job.extension == "pdf"
        assert job.size == 4
        assert "Angebot.PDF" in repr(job)


class TestUploadStorage:
    """Tests for temporary upload staging."""

    @pytest.fixture
    def storage(self, tmp_path):
        return UploadStorage(tmp_path / "uploads")

    def test_staged_file_is_removed(self, storage):
        with storage.staged(b"data", "rechnung.pdf") as path:
            assert path.exists()
            assert path.suffix == ".pdf"
            assert path.read_bytes() == b"data"

        assert not path.exists()

    def test_staged_file_is_removed_on_error(self, storage):
        with pytest.raises(RuntimeError):
            with storage.staged(b"data", "rechnung.pdf") as path:
                raise RuntimeError("extraction failed")

        assert not path.exists()

    def test_names_do_not_collide(self, storage):
        first = storage.save(b"a", "same.pdf")
        second = storage.save(b"b", "same.pdf")

        assert first != second

    def test_resolve_rejects_traversal(self, storage):
        with pytest.raises(ValidationError):
            storage.resolve("../../etc/passwd")

    def test_delete_missing_file(self, storage):
        assert storage.delete(storage.upload_dir / "gone.pdf") is False

    def test_cleanup_old_files(self, storage):
        old = storage.save(b"old", "old.pdf")
        fresh = storage.save(b"fresh", "fresh.pdf")
        two_hours_ago = time.time() - 2 * 3600
        os.utime(old, (two_hours_ago, two_hours_ago))

        removed = storage.cleanup_old_files(max_age_hours=1)

        assert removed == 1
        assert not old.exists()
        assert fresh.exists()

    def test_cleanup_without_directory(self, tmp_path):
        assert UploadStorage(tmp_path / "missing").cleanup_old_files(1) == 0
