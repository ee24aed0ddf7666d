"""Unit tests for ContentExtractor and the upload validation helpers."""

from __future__ import annotations

import io

import docx
import fitz
import pytest

from studylens.services.ingestion.content_extractor import (
    MEDIA_DOCX,
    MEDIA_MARKDOWN,
    MEDIA_PDF,
    MEDIA_TEXT,
    ContentExtractor,
    extract_topics,
    resolve_media_type,
    validate_upload,
)
from studylens.utils.errors import ExtractionError, UnsupportedMediaTypeError, ValidationError


@pytest.fixture
def extractor() -> ContentExtractor:
    return ContentExtractor()


def _pdf_bytes(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def _docx_bytes(*paragraphs: str) -> bytes:
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


# ======================================================================
# Plain text and Markdown
# ======================================================================


class TestPlainText:
    def test_single_heading_line(self, extractor: ContentExtractor) -> None:
        result = extractor.extract(b"Chapter 1 introduces vectors.", MEDIA_TEXT)
        assert result.text == "Chapter 1 introduces vectors."
        assert result.metadata.word_count == len(result.text.split())
        assert result.metadata.topics == ["Chapter 1 introduces vectors."]
        assert result.metadata.page_count is None

    def test_whitespace_collapsed(self, extractor: ContentExtractor) -> None:
        result = extractor.extract(b"  Unit 2\n\n   Matrices   and\tdeterminants \n", MEDIA_TEXT)
        assert result.text == "Unit 2 Matrices and determinants"
        assert result.metadata.word_count == 5

    def test_invalid_utf8_replaced(self, extractor: ContentExtractor) -> None:
        result = extractor.extract(b"Module 3 \xff\xfe optics notes", MEDIA_TEXT)
        assert "optics" in result.text

    def test_markdown_treated_as_text(self, extractor: ContentExtractor) -> None:
        raw = b"# Chapter 4: Waves\n\nWaves carry energy."
        result = extractor.extract(raw, MEDIA_MARKDOWN)
        assert result.metadata.topics == ["# Chapter 4: Waves"]

    def test_media_type_parameters_ignored(self, extractor: ContentExtractor) -> None:
        result = extractor.extract(b"plain words here", "text/plain; charset=utf-8")
        assert result.metadata.word_count == 3

    def test_empty_document_rejected(self, extractor: ContentExtractor) -> None:
        with pytest.raises(ExtractionError):
            extractor.extract(b"   \n\t ", MEDIA_TEXT)

    def test_unsupported_media_type(self, extractor: ContentExtractor) -> None:
        with pytest.raises(UnsupportedMediaTypeError):
            extractor.extract(b"GIF89a", "image/gif")


class TestTopicHeuristic:
    def test_only_first_twenty_lines_scanned(self) -> None:
        lines = ["filler"] * 20 + ["Chapter 21 is too late"]
        assert extract_topics("\n".join(lines)) == []

    def test_short_lines_ignored(self) -> None:
        assert extract_topics("Unit 1\nChapter 2 Kinematics") == ["Chapter 2 Kinematics"]

    def test_truncated_and_deduplicated(self) -> None:
        long_line = "Topic " + "x" * 200
        topics = extract_topics(f"{long_line}\n{long_line}")
        assert topics == [long_line[:100]]

    def test_at_most_ten_topics(self) -> None:
        text = "\n".join(f"Part {i} of the course" for i in range(15))
        assert len(extract_topics(text)) == 10

    def test_keyword_match_is_case_insensitive(self) -> None:
        assert extract_topics("MODULE ONE: ALGEBRA") == ["MODULE ONE: ALGEBRA"]


# ======================================================================
# Binary formats
# ======================================================================


class TestPdf:
    def test_pages_counted_and_joined(self, extractor: ContentExtractor) -> None:
        data = _pdf_bytes("Chapter 1 Kinematics basics", "Chapter 2 Dynamics basics")
        result = extractor.extract(data, MEDIA_PDF)
        assert result.metadata.page_count == 2
        assert "Kinematics" in result.text
        assert "Dynamics" in result.text
        assert result.metadata.word_count == len(result.text.split())

    def test_corrupt_pdf(self, extractor: ContentExtractor) -> None:
        with pytest.raises(ExtractionError):
            extractor.extract(b"%PDF-1.4 not really", MEDIA_PDF)


class TestDocx:
    def test_paragraphs_joined(self, extractor: ContentExtractor) -> None:
        data = _docx_bytes("Unit 5 Electrostatics", "", "Coulomb's law relates charges.")
        result = extractor.extract(data, MEDIA_DOCX)
        assert result.text == "Unit 5 Electrostatics Coulomb's law relates charges."
        assert result.metadata.topics == ["Unit 5 Electrostatics"]

    def test_corrupt_docx(self, extractor: ContentExtractor) -> None:
        with pytest.raises(ExtractionError):
            extractor.extract(b"PK not a zip", MEDIA_DOCX)


# ======================================================================
# Upload validation
# ======================================================================


class TestValidateUpload:
    def test_accepts_supported(self) -> None:
        validate_upload(MEDIA_PDF, 1024)

    def test_rejects_unsupported_type(self) -> None:
        with pytest.raises(UnsupportedMediaTypeError):
            validate_upload("application/zip", 10)

    def test_rejects_empty(self) -> None:
        with pytest.raises(ValidationError):
            validate_upload(MEDIA_TEXT, 0)

    def test_rejects_oversize(self) -> None:
        with pytest.raises(ValidationError, match="1MB"):
            validate_upload(MEDIA_TEXT, 2 * 1024 * 1024, max_bytes=1024 * 1024)


class TestResolveMediaType:
    def test_declared_supported_type_wins(self) -> None:
        assert resolve_media_type("application/pdf", "notes.txt") == MEDIA_PDF

    def test_extension_used_for_octet_stream(self) -> None:
        assert resolve_media_type("application/octet-stream", "notes.md") == MEDIA_MARKDOWN
        assert resolve_media_type("application/octet-stream", "Notes.DOCX") == MEDIA_DOCX

    def test_unknown_extension_keeps_declared(self) -> None:
        assert resolve_media_type("image/png", "photo.png") == "image/png"

    def test_missing_declared_type(self) -> None:
        assert resolve_media_type(None, "paper.pdf") == MEDIA_PDF
        assert resolve_media_type(None) == ""
