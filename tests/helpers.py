"""
Document builders and fakes shared by the test modules
"""
import io
import threading
from typing import List

import docx

from models.document import TranslationResult
from services.translator_client import TranslatorInterface


def build_pdf(lines: List[str]) -> bytes:
    """
    Build a minimal single-page PDF showing each line in Helvetica.

    An empty list produces a page without any text.
    """
    text_ops = []
    for index, line in enumerate(lines):
        escaped = line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        move = "72 720 Td" if index == 0 else "0 -28 Td"
        text_ops.append(f"{move} ({escaped}) Tj")
    stream = f"BT /F1 18 Tf {' '.join(text_ops)} ET".encode("latin-1") if lines else b""

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = io.BytesIO()
    out.write(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, 1):
        offsets.append(out.tell())
        out.write(f"{number} 0 obj\n".encode() + body + b"\nendobj\n")

    xref_offset = out.tell()
    out.write(f"xref\n0 {len(objects) + 1}\n".encode())
    out.write(b"0000000000 65535 f \n")
    for offset in offsets:
        out.write(f"{offset:010d} 00000 n \n".encode())
    out.write(f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n".encode())

    return out.getvalue()


def build_docx(paragraphs: List[str], table_rows: List[List[str]] = None) -> bytes:
    """Build a DOCX document with the given paragraphs and an optional table"""
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)

    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for row_index, row in enumerate(table_rows):
            for col_index, value in enumerate(row):
                table.cell(row_index, col_index).text = value

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def read_docx_paragraphs(content: bytes) -> List[str]:
    """Non-empty paragraph texts of a DOCX document"""
    document = docx.Document(io.BytesIO(content))
    return [p.text for p in document.paragraphs if p.text]


class FakeTranslator(TranslatorInterface):
    """Translator returning canned translations without network access"""

    name = "fake"

    def __init__(self, translations=None, error: Exception = None):
        self.translations = translations or {}
        self.error = error
        self.calls = []

    def translate(self, text: str, target_language: str) -> TranslationResult:
        self.calls.append((text, target_language))
        if self.error is not None:
            raise self.error
        translated = "\n".join(
            self.translations.get(line, f"[{target_language}] {line}") for line in text.split("\n")
        )
        return TranslationResult(
            source_text=text,
            translated_text=translated,
            target_language=target_language,
            provider=self.name
        )




class BlockingTranslator(FakeTranslator):
    """FakeTranslator that holds every call until released"""

    def __init__(self, translations=None):
        super().__init__(translations)
        self.entered = threading.Event()
        self.release = threading.Event()

    def translate(self, text: str, target_language: str) -> TranslationResult:
        self.entered.set()
        self.release.wait(10)
        return super().translate(text, target_language)
