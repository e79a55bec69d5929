"""Bank statement text extraction from searchable PDFs."""

import io
import logging
from pathlib import Path

import pdfplumber

log = logging.getLogger(__name__)

PDF_CONTENT_TYPE = 'application/pdf'

NOT_PDF_MESSAGE = "Please select a PDF file."
UNREADABLE_MESSAGE = "Failed to process PDF. The file could not be read as a PDF document."
NO_TEXT_MESSAGE = (
    "Failed to process PDF. Make sure it's a searchable PDF (not an image scan)."
)


class ExtractionError(Exception):
    """The statement could not be turned into text.

    The message is meant for the operator.
    """


def validate_statement(filename: str, content_type: str | None = None) -> None:
    """Reject files that are not declared as PDF.

    Args:
        filename: Name of the uploaded file.
        content_type: Declared MIME type, when the upload carries one.

    Raises:
        ExtractionError: If the declared type is not PDF.
    """
    if content_type is not None:
        declared_pdf = content_type.split(';')[0].strip().lower() == PDF_CONTENT_TYPE
    else:
        declared_pdf = Path(filename).suffix.lower() == '.pdf'
    if not declared_pdf:
        raise ExtractionError(NOT_PDF_MESSAGE)


def extract_statement_text(data: bytes) -> str:
    """Extract the text of every page, in page order.

    Args:
        data: Raw PDF bytes.

    Returns:
        Page texts joined with a single space.

    Raises:
        ExtractionError: If the bytes are not a readable PDF or the PDF
            has no text layer.
    """
    page_texts: list[str] = []
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                page_texts.append(page.extract_text() or '')
    except Exception as exc:
        log.error("PDF extraction failed: %s", exc)
        raise ExtractionError(UNREADABLE_MESSAGE) from exc

    text = ' '.join(page_texts)
    if not text.strip():
        raise ExtractionError(NO_TEXT_MESSAGE)

    log.info("Extracted %d characters from %d pages", len(text), len(page_texts))
    return text


def read_statement(path: str | Path, content_type: str | None = None) -> str:
    """Validate and extract a statement stored on disk."""
    path = Path(path)
    validate_statement(path.name, content_type)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ExtractionError(f"Could not open {path}: {exc.strerror}") from exc
    return extract_statement_text(data)
