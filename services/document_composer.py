"""
Output document composer

Builds a Word document from translated text, one paragraph per non-empty line.
"""
import io
import logging
import re
from pathlib import Path
from typing import List, Optional

import docx

from models.document import DOCX_MIME_TYPE, GeneratedDocument
from utils.exceptions import CompositionError

logger = logging.getLogger(__name__)

# Characters XML 1.0 cannot carry; lxml rejects them in paragraph text
_XML_INVALID = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def split_paragraphs(text: str) -> List[str]:
    """Trimmed, non-empty lines of text in their original order"""
    cleaned = _XML_INVALID.sub("", text or "")
    return [line.strip() for line in cleaned.splitlines() if line.strip()]


def output_filename(source_filename: Optional[str]) -> str:
    stem = Path(source_filename).stem if source_filename else ""
    return f"translated_{stem or 'document'}.docx"


class DocumentComposer:
    """Composes translated text into a DOCX document held in memory"""

    def compose(self, text: str, source_filename: Optional[str] = None) -> GeneratedDocument:
        """
        Build a DOCX document from text.

        Args:
            text: Translated text; each non-empty line becomes a paragraph
            source_filename: Name of the uploaded file, used for the output name

        Returns:
            GeneratedDocument with the DOCX bytes

        Raises:
            CompositionError: If python-docx fails to build or save the document
        """
        paragraphs = split_paragraphs(text)

        try:
            document = docx.Document()
            for paragraph in paragraphs:
                document.add_paragraph(paragraph)

            buffer = io.BytesIO()
            document.save(buffer)
        except Exception as e:
            logger.error(f"Failed to compose output document: {type(e).__name__}: {e}")
            raise CompositionError(
                message="Failed to build the translated document",
                original_exception=e
            )

        generated = GeneratedDocument(
            content=buffer.getvalue(),
            filename=output_filename(source_filename),
            media_type=DOCX_MIME_TYPE,
            paragraph_count=len(paragraphs)
        )

        logger.info(f"Composed {generated.filename} with {generated.paragraph_count} paragraph(s)")
        return generated
