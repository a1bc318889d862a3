"""Text extraction for uploaded résumé documents."""

from __future__ import annotations

import logging

import fitz  # PyMuPDF

from rehearse.core.errors import ParseError


LOGGER = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


def is_pdf_upload(filename: str, content_type: str | None) -> bool:
    if content_type == PDF_MIME_TYPE:
        return True
    return (filename or "").lower().endswith(".pdf") and content_type in (None, "", "application/octet-stream")


def extract_pdf_text(data: bytes) -> str:
    """Return the text layer of every page, pages separated by blank lines."""

    if not data:
        raise ParseError("Failed to extract text from PDF.")
    try:
        document = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        LOGGER.warning("Unreadable PDF upload: %s", exc)
        raise ParseError("Failed to extract text from PDF.") from exc

    with document:
        pages = [page.get_text("text").strip() for page in document]

    text = "\n\n".join(page for page in pages if page)
    LOGGER.debug("Extracted %d characters from %d page(s)", len(text), len(pages))
    return text
