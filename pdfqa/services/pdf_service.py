"""
PDF metadata extraction service.

Uses PyPDF2 to count pages of an uploaded PDF. Parsing is CPU-bound; callers
run it via asyncio.to_thread so the event loop stays free.
"""

import io
import logging
from typing import Optional

from PyPDF2 import PdfReader

logger = logging.getLogger(__name__)


def count_pdf_pages(content: bytes) -> int:
    """
    Return the number of pages in a PDF given as bytes.
    Raises PdfReadError for content that is not a readable PDF.
    """
    reader = PdfReader(io.BytesIO(content))
    return len(reader.pages)


def extract_page_count(content: bytes) -> Optional[int]:
    """Best-effort page count: None when the PDF can't be parsed."""
    try:
        return count_pdf_pages(content)
    except Exception as e:  # PyPDF2 raises a wide range of errors on malformed files
        logger.warning("Could not extract PDF page count: %s", e)
        return None
