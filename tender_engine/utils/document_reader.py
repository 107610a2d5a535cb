"""
Document reader utility for extracting text from uploaded documents.

Supports PDF, DOCX and plain text. Extraction is best-effort: every reader
returns None on failure and logs why, so an upload is never blocked by a file
we cannot read.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Optional

from docx import Document
from PyPDF2 import PdfReader

logger = logging.getLogger(__name__)

PDF_TYPES = {"application/pdf"}
DOCX_TYPES = {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}
TEXT_EXTENSIONS = {".txt", ".md", ".markdown", ".csv"}


def extract_text_from_pdf(data: bytes, max_pages: int = 200) -> Optional[str]:
    """
    Extract text content from PDF bytes.

    Args:
        data: Raw PDF bytes
        max_pages: Maximum number of pages to extract

    Returns:
        Extracted text content or None if extraction fails
    """
    try:
        reader = PdfReader(BytesIO(data))
        text_parts = []

        num_pages = min(len(reader.pages), max_pages)
        for i in range(num_pages):
            page_text = reader.pages[i].extract_text()
            if page_text:
                text_parts.append(page_text)

        if text_parts:
            full_text = "\n\n".join(text_parts).strip()
            logger.info("Extracted %s chars from PDF (%s pages)", len(full_text), num_pages)
            return full_text

        logger.warning("No text extracted from PDF")
        return None

    except Exception as e:
        logger.error("Error reading PDF: %s", e)
        return None


def extract_text_from_docx(data: bytes) -> Optional[str]:
    """
    Extract text content from DOCX bytes, including table cells.

    Returns:
        Extracted text content or None if extraction fails
    """
    try:
        doc = Document(BytesIO(data))
        text_parts = [para.text for para in doc.paragraphs if para.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(" | ".join(row_text))

        if text_parts:
            full_text = "\n".join(text_parts).strip()
            logger.info("Extracted %s chars from DOCX", len(full_text))
            return full_text

        logger.warning("No text extracted from DOCX")
        return None

    except Exception as e:
        logger.error("Error reading DOCX: %s", e)
        return None


def extract_text(data: bytes, filename: str, content_type: Optional[str] = None) -> Optional[str]:
    """
    Extract text from an uploaded file, dispatching on mime type then extension.

    Returns:
        Extracted text or None if the format is unsupported or extraction failed
    """
    suffix = Path(filename).suffix.lower()

    if content_type in PDF_TYPES or suffix == ".pdf":
        return extract_text_from_pdf(data)
    if content_type in DOCX_TYPES or suffix == ".docx":
        return extract_text_from_docx(data)
    if (content_type or "").startswith("text/") or suffix in TEXT_EXTENSIONS:
        try:
            text = data.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            logger.error("Error decoding text file %s: %s", filename, e)
            return None
        return text or None

    logger.info("No text extractor for %s (%s)", filename, content_type)
    return None
