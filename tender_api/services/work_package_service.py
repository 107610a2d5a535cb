"""
Work package and generated content persistence.

Every content write increments content_version. Strategy results are saved
through save_combined_strategy() only, so bid analysis and win themes always
land in the same commit.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tender_api.models.database import Project, WorkPackage, WorkPackageContent
from tender_engine.errors import NotFoundError, StorageError
from tender_engine.models import Requirement, WorkPackageInfo, normalize_requirements
from tender_engine.workflow import WorkflowEvent, apply_event

logger = logging.getLogger(__name__)


class WorkPackageService:
    """Service for work package operations."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to %s: %s", action, e)
            raise StorageError(f"Failed to {action}") from e

    def next_order(self, project_id: str) -> int:
        """max(order) + 1 within the project, or 0 for its first package."""
        current = (
            self.db.query(func.max(WorkPackage.order))
            .filter(WorkPackage.project_id == project_id)
            .scalar()
        )
        return 0 if current is None else current + 1

    def create(
        self,
        project_id: str,
        document_type: str,
        description: Optional[str] = None,
        requirements: Optional[Iterable[Any]] = None,
    ) -> WorkPackage:
        if self.db.query(Project.id).filter(Project.id == project_id).first() is None:
            raise NotFoundError("Project", project_id)

        work_package = WorkPackage(
            project_id=project_id,
            document_type=document_type,
            document_description=description,
            requirements=[r.to_dict() for r in normalize_requirements(requirements)],
            order=self.next_order(project_id),
        )
        self.db.add(work_package)
        self._commit("create work package")
        self.db.refresh(work_package)
        logger.info("Created work package %s (%s) at order %s", work_package.id, document_type, work_package.order)
        return work_package

    def get(self, work_package_id: str) -> Optional[WorkPackage]:
        return self.db.query(WorkPackage).filter(WorkPackage.id == work_package_id).first()

    def get_or_404(self, work_package_id: str) -> WorkPackage:
        work_package = self.get(work_package_id)
        if work_package is None:
            raise NotFoundError("Work package", work_package_id)
        return work_package

    def update(
        self,
        work_package: WorkPackage,
        document_type: Optional[str] = None,
        description: Optional[str] = None,
        requirements: Optional[Iterable[Any]] = None,
    ) -> WorkPackage:
        if document_type is not None:
            work_package.document_type = document_type
        if description is not None:
            work_package.document_description = description
        if requirements is not None:
            work_package.requirements = [r.to_dict() for r in normalize_requirements(requirements)]
        self._commit("update work package")
        self.db.refresh(work_package)
        return work_package

    def save_requirements(self, work_package: WorkPackage, requirements: list[Requirement]) -> WorkPackage:
        work_package.requirements = [r.to_dict() for r in requirements]
        self._commit("save requirements")
        return work_package

    def get_content(self, work_package_id: str) -> Optional[WorkPackageContent]:
        return (
            self.db.query(WorkPackageContent)
            .filter(WorkPackageContent.work_package_id == work_package_id)
            .first()
        )

    def _content_for_write(self, work_package: WorkPackage) -> WorkPackageContent:
        content = self.get_content(work_package.id)
        if content is None:
            content = WorkPackageContent(work_package_id=work_package.id, content_version=0)
            self.db.add(content)
        content.content_version = (content.content_version or 0) + 1
        return content

    def save_combined_strategy(
        self,
        work_package: WorkPackage,
        bid_analysis: dict[str, Any],
        win_themes: list[str],
    ) -> WorkPackageContent:
        """Write bid analysis and win themes in a single commit."""
        content = self._content_for_write(work_package)
        content.bid_analysis = bid_analysis
        content.win_themes = list(win_themes)
        self._commit("save strategy")
        self.db.refresh(content)
        return content

    def save_combined_generation(
        self,
        work_package: WorkPackage,
        bid_analysis: dict[str, Any],
        win_themes: list[str],
        text: str,
    ) -> WorkPackageContent:
        """Write strategy and drafted content, and start the package, in a single commit."""
        content = self._content_for_write(work_package)
        content.bid_analysis = bid_analysis
        content.win_themes = list(win_themes)
        content.content = text
        work_package.status = apply_event(work_package.status, WorkflowEvent.GENERATION_STARTED)
        self._commit("save generated content")
        self.db.refresh(content)
        return content

    def save_win_themes(self, work_package: WorkPackage, win_themes: list[str]) -> WorkPackageContent:
        content = self._content_for_write(work_package)
        content.win_themes = list(win_themes)
        self._commit("save win themes")
        self.db.refresh(content)
        return content

    def save_content(self, work_package: WorkPackage, text: str) -> WorkPackageContent:
        content = self._content_for_write(work_package)
        content.content = text
        self._commit("save content")
        self.db.refresh(content)
        return content

    def record_event(self, work_package: WorkPackage, event: WorkflowEvent) -> WorkPackage:
        previous = work_package.status
        work_package.status = apply_event(previous, event)
        if work_package.status != previous:
            self._commit("update work package status")
            logger.info("Work package %s: %s -> %s", work_package.id, previous.value, work_package.status.value)
        return work_package

    def mark_exported(self, work_package: WorkPackage, file_path: str) -> WorkPackageContent:
        """Record the export path and complete the package in one commit."""
        content = self._content_for_write(work_package)
        content.exported_file_path = file_path
        content.exported_at = datetime.now(timezone.utc)
        work_package.status = apply_event(work_package.status, WorkflowEvent.EXPORT_SUCCEEDED)
        self._commit("record export")
        self.db.refresh(content)
        return content

    @staticmethod
    def to_info(work_package: WorkPackage) -> WorkPackageInfo:
        return WorkPackageInfo(
            id=work_package.id,
            project_id=work_package.project_id,
            document_type=work_package.document_type,
            description=work_package.document_description,
            requirements=normalize_requirements(work_package.requirements),
            order=work_package.order,
            status=work_package.status.value,
        )
