"""
Markdown to DOCX rendering for exported tender documents.

Covers the structure generated drafts use: #/##/### headings, bullet and
numbered lists, paragraphs, and **bold** / *italic* inline runs.
"""
import logging
import re
from io import BytesIO

from docx import Document

logger = logging.getLogger(__name__)

_HEADING = re.compile(r"^(#{1,3})\s+(.*)$")
_BULLET = re.compile(r"^[-*+]\s+(.*)$")
_NUMBERED = re.compile(r"^\d+[.)]\s+(.*)$")
_INLINE = re.compile(r"(\*\*[^*]+\*\*|\*[^*]+\*)")


def _add_runs(paragraph, text: str) -> None:
    for part in _INLINE.split(text):
        if not part:
            continue
        if part.startswith("**") and part.endswith("**") and len(part) > 4:
            paragraph.add_run(part[2:-2]).bold = True
        elif part.startswith("*") and part.endswith("*") and len(part) > 2:
            paragraph.add_run(part[1:-1]).italic = True
        else:
            paragraph.add_run(part)


def build_docx(markdown: str, title: str | None = None):
    """Build a python-docx Document from Markdown text."""
    document = Document()
    if title:
        document.add_heading(title, 0)

    for raw_line in markdown.replace("\r", "").split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        heading = _HEADING.match(line)
        if heading:
            document.add_heading(heading.group(2).strip(), len(heading.group(1)))
            continue

        bullet = _BULLET.match(line)
        if bullet:
            _add_runs(document.add_paragraph(style="List Bullet"), bullet.group(1))
            continue

        numbered = _NUMBERED.match(line)
        if numbered:
            _add_runs(document.add_paragraph(style="List Number"), numbered.group(1))
            continue

        _add_runs(document.add_paragraph(), line)

    return document


def render_markdown_to_docx(markdown: str, title: str | None = None) -> bytes:
    """Render Markdown to DOCX bytes."""
    document = build_docx(markdown, title)
    buffer = BytesIO()
    document.save(buffer)
    docx_bytes = buffer.getvalue()
    buffer.close()

    logger.info("Generated DOCX: %s bytes", len(docx_bytes))
    return docx_bytes
