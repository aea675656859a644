"""
Tests for the DOCX document composer
"""
import pytest
from unittest.mock import patch
from hypothesis import given, settings as hypothesis_settings, strategies as st

from models.document import DOCX_MIME_TYPE
from services.document_composer import DocumentComposer, output_filename, split_paragraphs
from utils.exceptions import CompositionError, ErrorCode
from tests.helpers import read_docx_paragraphs


class TestDocumentComposer:
    """Test cases for DocumentComposer"""

    def setup_method(self):
        self.composer = DocumentComposer()

    def test_single_line_single_paragraph(self):
        document = self.composer.compose("Bonjour le monde", "hello.pdf")

        assert read_docx_paragraphs(document.content) == ["Bonjour le monde"]
        assert document.paragraph_count == 1
        assert document.filename == "translated_hello.docx"
        assert document.media_type == DOCX_MIME_TYPE

    def test_blank_lines_dropped_and_lines_trimmed(self):
        document = self.composer.compose("  first  \n\n   \nsecond\n")

        assert read_docx_paragraphs(document.content) == ["first", "second"]
        assert document.paragraph_count == 2

    def test_empty_text_produces_empty_document(self):
        document = self.composer.compose("")

        assert document.paragraph_count == 0
        assert read_docx_paragraphs(document.content) == []
        assert document.size > 0

    def test_control_characters_do_not_break_composition(self):
        document = self.composer.compose("Sawubona\x00 klasi\x0b")

        assert read_docx_paragraphs(document.content) == ["Sawubona klasi"]

    def test_library_failure_wrapped(self):
        with patch("services.document_composer.docx.Document", side_effect=RuntimeError("broken template")):
            with pytest.raises(CompositionError) as exc_info:
                self.composer.compose("text")

        assert exc_info.value.error_code == ErrorCode.COMPOSITION_FAILED
        assert exc_info.value.details["processing_stage"] == "composition"

    @given(st.lists(
        st.text(alphabet=st.characters(whitelist_categories=("L", "N", "P", "Zs")), max_size=40),
        max_size=15
    ))
    @hypothesis_settings(max_examples=50, deadline=None)
    def test_one_paragraph_per_non_empty_line(self, lines):
        """Paragraphs are exactly the trimmed non-empty lines, in order"""
        text = "\n".join(lines)

        document = self.composer.compose(text)

        expected = [line.strip() for line in lines if line.strip()]
        assert read_docx_paragraphs(document.content) == expected
        assert document.paragraph_count == len(expected)


class TestComposerHelpers:
    """Test filename and paragraph helpers"""

    @pytest.mark.parametrize("source, expected", [
        ("exam.pdf", "translated_exam.docx"),
        ("notes.final.docx", "translated_notes.final.docx"),
        (None, "translated_document.docx"),
        ("", "translated_document.docx"),
    ])
    def test_output_filename(self, source, expected):
        assert output_filename(source) == expected

    def test_split_paragraphs(self):
        assert split_paragraphs("a\r\nb\n\n c ") == ["a", "b", "c"]
