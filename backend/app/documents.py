# documents.py
# Text extraction for uploaded tender PDFs and proposal templates

import io
import logging

from pypdf import PdfReader

from .errors import ExtractionError, InvalidFileError
from .models import PDF_MIME_TYPE

logger = logging.getLogger(__name__)

TEMPLATE_TEXT_SUFFIXES = (".md", ".markdown", ".txt")


def extract_text_from_pdf(data: bytes, filename: str = "documento.pdf") -> str:
    """
    Extrai texto de um PDF usando pypdf, página a página.
    PDFs escaneados (somente imagem) não têm texto extraível e são rejeitados.
    """
    logger.info("Extracting text from PDF %s (%d bytes)", filename, len(data))
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = []
        for page_num, page in enumerate(reader.pages):
            page_text = page.extract_text()
            if page_text:
                pages.append(page_text)
            else:
                logger.warning("No text extracted from page %d of %s", page_num + 1, filename)
    except Exception as e:
        logger.exception("Failed to read PDF %s", filename)
        raise ExtractionError(f"Não foi possível ler o PDF '{filename}'.") from e

    text = "\n".join(pages)
    if not text.strip():
        logger.warning("PDF %s has no extractable text (scanned document?)", filename)
        raise ExtractionError(
            f"Não foi possível extrair texto legível do PDF '{filename}'. "
            "O arquivo pode ser um PDF de imagem (escaneado)."
        )
    logger.info("Extracted %d chars from %s", len(text), filename)
    return text


def read_template_upload(data: bytes, filename: str, content_type: str = "") -> str:
    """Template text from a .md/.txt file or a PDF."""
    name = (filename or "").lower()
    if content_type == PDF_MIME_TYPE or name.endswith(".pdf"):
        return extract_text_from_pdf(data, filename)
    if name.endswith(TEMPLATE_TEXT_SUFFIXES):
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ExtractionError("O template deve estar codificado em UTF-8.") from e
    raise InvalidFileError("Envie um template .md, .txt ou .pdf.")
