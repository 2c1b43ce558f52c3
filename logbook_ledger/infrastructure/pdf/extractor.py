"""PDF text extraction that keeps the visual line structure of bank statements"""

import io
import logging
from typing import Iterable, List, Tuple

import pdfplumber

from logbook_ledger.config import settings
from logbook_ledger.domain.exceptions import ExtractionFailed

logger = logging.getLogger(__name__)

# Tops closer than this (in PDF points) belong to the same visual line
LINE_TOLERANCE = 0.5


def join_runs(runs: Iterable[Tuple[str, float]]) -> str:
    """
    Concatenate positioned text runs, breaking the line whenever the vertical
    position changes between consecutive runs.

    Args:
        runs: (text, top) pairs in document order

    Returns:
        Text with one line per visual row; runs on the same row are space separated
    """
    lines: List[str] = []
    current: List[str] = []
    last_top = None

    for text, top in runs:
        if last_top is not None and abs(top - last_top) > LINE_TOLERANCE and current:
            lines.append(" ".join(current))
            current = []
        current.append(text)
        last_top = top

    if current:
        lines.append(" ".join(current))
    return "\n".join(lines)


def extract_text(pdf_bytes: bytes) -> str:
    """
    Convert an uploaded PDF into plain text, one statement row per line.

    Words are taken in text-flow order with a tight horizontal tolerance so
    that neighbouring columns (date, description, amount) stay separate tokens.

    Raises:
        ExtractionFailed: On empty, corrupt, encrypted or non-PDF input
    """
    if not pdf_bytes:
        raise ExtractionFailed("Uploaded document is empty")

    page_texts: List[str] = []
    try:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            for page in pdf.pages:
                words = page.extract_words(
                    x_tolerance=settings.pdf_x_tolerance,
                    keep_blank_chars=False,
                    use_text_flow=True,
                )
                page_texts.append(join_runs((w["text"], w["top"]) for w in words))
    except Exception as e:
        logger.warning(f"PDF extraction error: {e}")
        raise ExtractionFailed(f"Failed to extract text from PDF: {e}") from e

    text = "\n".join(t for t in page_texts if t)
    logger.info("PDF text extracted", extra={"pages": len(page_texts), "text_length": len(text)})
    return text
