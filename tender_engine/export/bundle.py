"""
Export file naming and bulk packaging.

Bulk export fetches every document's content concurrently. The fan-out gives
no ordering guarantee, so collected documents are re-sorted by the work
package ``order`` before they are written to the archive.
"""
import asyncio
import logging
import re
import zipfile
from dataclasses import dataclass
from datetime import date, datetime, timezone
from io import BytesIO
from typing import Awaitable, Callable, Optional, Sequence

from tender_engine.config.settings import settings
from tender_engine.errors import NoContentError
from tender_engine.export.docx_renderer import render_markdown_to_docx
from tender_engine.models import WorkPackageInfo

logger = logging.getLogger(__name__)

ContentFetcher = Callable[[str], Awaitable[Optional[str]]]


@dataclass
class ExportDocument:
    work_package_id: str
    document_type: str
    order: int
    content: str


def build_export_filename(document_type: str, project_name: str, extension: str = "docx") -> str:
    """``{document_type}_{project_name}.{ext}`` with whitespace runs replaced by underscores."""
    stem = re.sub(r"\s+", "_", f"{document_type}_{project_name}".strip())
    stem = stem.replace("/", "_").replace("\\", "_")
    return f"{stem}.{extension}"


def build_archive_filename(project_name: str, on: date | None = None) -> str:
    """
    ``{project}_TenderDocuments_{YYYY-MM-DD}.zip`` with non-alphanumerics replaced.

    The date defaults to today in UTC.
    """
    on = on or datetime.now(timezone.utc).date()
    sanitized = re.sub(r"[^a-zA-Z0-9]", "_", project_name)
    return f"{sanitized}_{settings.export.archive_suffix}_{on.isoformat()}.zip"


async def collect_export_documents(
    work_packages: Sequence[WorkPackageInfo],
    fetch_content: ContentFetcher,
) -> list[ExportDocument]:
    """
    Fetch content for every work package concurrently.

    Fetches are awaited together, so they only overlap when fetch_content
    yields to the event loop.

    Packages without content are dropped; the rest come back sorted by order.

    Raises:
        NoContentError: no package had content
    """
    contents = await asyncio.gather(*(fetch_content(wp.id) for wp in work_packages))

    documents = []
    for work_package, content in zip(work_packages, contents):
        if not content or not content.strip():
            logger.warning("Work package %s is completed but has no content; skipping", work_package.id)
            continue
        documents.append(ExportDocument(
            work_package_id=work_package.id,
            document_type=work_package.document_type,
            order=work_package.order,
            content=content,
        ))

    if not documents:
        raise NoContentError("No content available to export")

    documents.sort(key=lambda document: document.order)
    return documents


def build_export_archive(
    project_name: str,
    documents: Sequence[ExportDocument],
    on: date | None = None,
) -> tuple[str, bytes]:
    """Render each document to DOCX and zip them in the given order."""
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for position, document in enumerate(documents, start=1):
            entry_type = re.sub(r"[\s/\\]+", "_", document.document_type.strip())
            archive.writestr(
                f"{position:02d}_{entry_type}.docx",
                render_markdown_to_docx(document.content, title=document.document_type),
            )

    filename = build_archive_filename(project_name, on)
    logger.info("Built export archive %s with %s documents", filename, len(documents))
    return filename, buffer.getvalue()
