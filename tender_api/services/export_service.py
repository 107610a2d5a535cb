"""
Single and bulk export of work package documents.
"""
import logging
from datetime import date
from typing import Optional

from tender_api.core.config import settings
from tender_api.services.request_context import RequestContext
from tender_engine.errors import NoContentError, PreconditionError
from tender_engine.export import (
    build_export_archive,
    build_export_filename,
    collect_export_documents,
    render_markdown_to_docx,
)
from tender_engine.workflow import WorkPackageStatus

logger = logging.getLogger(__name__)


class ExportService:
    """Service for export operations."""

    def __init__(self, ctx: RequestContext):
        self.ctx = ctx

    def export_work_package(self, work_package_id: str) -> dict[str, str]:
        """
        Render the package's content to DOCX, store it and complete the package.

        Nothing is written and the status is untouched unless the file stored.
        """
        work_package = self.ctx.work_packages.get_or_404(work_package_id)
        content = self.ctx.work_packages.get_content(work_package.id)
        if content is None or not (content.content or "").strip():
            raise NoContentError("No content to export")

        project = self.ctx.projects.get_or_404(work_package.project_id)
        filename = build_export_filename(work_package.document_type, project.name)
        data = render_markdown_to_docx(content.content, title=work_package.document_type)

        path = f"{project.organization_id}/exports/{work_package.id}/{filename}"
        self.ctx.storage.save(path, data)
        self.ctx.work_packages.mark_exported(work_package, path)

        logger.info("Exported work package %s to %s", work_package.id, path)
        return {
            "download_url": self.ctx.storage.create_signed_url(path, settings.SIGNED_URL_TTL_SECONDS),
            "filename": filename,
        }

    async def export_project(self, project_id: str, on: Optional[date] = None) -> tuple[str, bytes]:
        """Zip every completed work package's document, in order."""
        project = self.ctx.projects.get_or_404(project_id)
        work_packages = self.ctx.projects.list_work_packages(project_id, status=WorkPackageStatus.COMPLETED)
        if not work_packages:
            raise PreconditionError("No completed work packages to export")

        # Never awaits, so gather runs these sequentially on the shared session
        async def fetch_content(work_package_id: str) -> Optional[str]:
            content = self.ctx.work_packages.get_content(work_package_id)
            return content.content if content else None

        documents = await collect_export_documents(
            [self.ctx.work_packages.to_info(wp) for wp in work_packages],
            fetch_content,
        )
        return build_export_archive(project.name, documents, on)
