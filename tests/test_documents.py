import io

import pytest
from pypdf import PdfWriter

from backend.app import documents
from backend.app.errors import ExtractionError, InvalidFileError


def test_extracts_pdf_text(make_pdf):
    assert "Termo de Referencia" in documents.extract_text_from_pdf(make_pdf("Termo de Referencia"), "tr.pdf")


def test_corrupt_pdf_raises():
    with pytest.raises(ExtractionError):
        documents.extract_text_from_pdf(b"definitely not a pdf", "broken.pdf")


def test_pdf_without_text_raises():
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buf = io.BytesIO()
    writer.write(buf)

    with pytest.raises(ExtractionError):
        documents.extract_text_from_pdf(buf.getvalue(), "scan.pdf")


class TestTemplateUpload:
    def test_markdown_is_decoded(self):
        assert documents.read_template_upload("# Proposta {{CNPJ}}".encode("utf-8"), "modelo.md") == "# Proposta {{CNPJ}}"

    def test_pdf_template_is_extracted(self, make_pdf):
        assert "Modelo" in documents.read_template_upload(make_pdf("Modelo"), "modelo.pdf", "application/pdf")

    def test_other_formats_are_rejected(self):
        with pytest.raises(InvalidFileError):
            documents.read_template_upload(b"x", "modelo.docx")
