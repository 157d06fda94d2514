"""
MedScope.ai - Document Text Extraction
Pulls text out of uploaded PDF reports for the narrative report prompt.
"""
import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from core.errors import DocumentError

logger = logging.getLogger(__name__)

MAX_DOCUMENT_CHARS = 20000


def extract_pdf_text(data: bytes, max_chars: int = MAX_DOCUMENT_CHARS) -> str:
    """
    Extract text from a text-based PDF.

    Pages are separated by ``--- Page N ---`` markers. Output is cut at
    ``max_chars``. Scanned, image-only PDFs yield no text and raise.
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = list(reader.pages)
    except (PdfReadError, ValueError, OSError) as e:
        raise DocumentError(f"Unable to read PDF document: {e}") from e

    parts = []
    for i, page in enumerate(pages):
        try:
            txt = page.extract_text() or ""
        except (PdfReadError, ValueError, KeyError) as e:
            logger.warning(f"Skipping unreadable page {i + 1}: {e}")
            txt = ""
        if txt.strip():
            parts.append(f"--- Page {i + 1} ---\n{txt.strip()}")

    text = "\n\n".join(parts).strip()
    if not text:
        raise DocumentError("No extractable text found in document")

    logger.info(f"Extracted {len(text)} characters from {len(pages)} page(s)")
    return text[:max_chars]
