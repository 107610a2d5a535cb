"""
Project and RFT document persistence.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tender_api.models.database import Organization, Project, ProjectDocument, ProjectStatus, WorkPackage
from tender_api.services.document_ingest import IngestedFile
from tender_engine.errors import NotFoundError, StorageError
from tender_engine.workflow import WorkPackageStatus

logger = logging.getLogger(__name__)


class ProjectService:
    """Service for project and RFT document operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        organization_id: str,
        name: str,
        client_name: Optional[str] = None,
        deadline: Optional[datetime] = None,
        instructions: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Project:
        if self.db.query(Organization.id).filter(Organization.id == organization_id).first() is None:
            raise NotFoundError("Organization", organization_id)

        project = Project(
            organization_id=organization_id,
            name=name,
            client_name=client_name,
            deadline=deadline,
            instructions=instructions,
            created_by=created_by,
        )
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        logger.info("Created project %s (%s)", project.id, project.name)
        return project

    def get(self, project_id: str) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def get_or_404(self, project_id: str) -> Project:
        project = self.get(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    def update(self, project_id: str, **fields) -> Project:
        project = self.get_or_404(project_id)
        for key, value in fields.items():
            setattr(project, key, value)
        self.db.commit()
        self.db.refresh(project)
        return project

    def set_status(self, project: Project, status: ProjectStatus) -> Project:
        project.status = status
        self.db.commit()
        return project

    def list_work_packages(self, project_id: str, status: Optional[WorkPackageStatus] = None) -> list[WorkPackage]:
        query = self.db.query(WorkPackage).filter(WorkPackage.project_id == project_id)
        if status is not None:
            query = query.filter(WorkPackage.status == status)
        return query.order_by(WorkPackage.order).all()

    # RFT documents

    def add_document(
        self,
        project_id: str,
        name: str,
        file_type: Optional[str],
        ingested: IngestedFile,
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
        is_primary_rft: bool = False,
    ) -> ProjectDocument:
        self.get_or_404(project_id)
        document = ProjectDocument(
            project_id=project_id,
            name=name,
            file_path=ingested.file_path,
            file_type=file_type,
            file_size=ingested.file_size,
            content_text=ingested.content_text,
            content_extracted=ingested.content_extracted,
            category=category,
            tags=tags or [],
            is_primary_rft=False,
        )
        self.db.add(document)
        if is_primary_rft:
            self.db.flush()
            return self.set_primary_rft(project_id, document.id)
        self.db.commit()
        self.db.refresh(document)
        return document

    def list_documents(self, project_id: str) -> list[ProjectDocument]:
        return (
            self.db.query(ProjectDocument)
            .filter(ProjectDocument.project_id == project_id)
            .order_by(ProjectDocument.is_primary_rft.desc(), ProjectDocument.uploaded_at)
            .all()
        )

    def get_document_or_404(self, project_id: str, document_id: str) -> ProjectDocument:
        document = (
            self.db.query(ProjectDocument)
            .filter(ProjectDocument.id == document_id, ProjectDocument.project_id == project_id)
            .first()
        )
        if document is None:
            raise NotFoundError("Document", document_id)
        return document

    def set_primary_rft(self, project_id: str, document_id: str) -> ProjectDocument:
        """
        Make one document the project's primary RFT.

        Clearing the previous primary and setting the new one commit together.
        """
        document = self.get_document_or_404(project_id, document_id)
        try:
            (
                self.db.query(ProjectDocument)
                .filter(
                    ProjectDocument.project_id == project_id,
                    ProjectDocument.id != document_id,
                    ProjectDocument.is_primary_rft.is_(True),
                )
                .update({ProjectDocument.is_primary_rft: False}, synchronize_session="fetch")
            )
            document.is_primary_rft = True
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to set primary RFT %s: %s", document_id, e)
            raise StorageError("Failed to set primary RFT") from e

        self.db.refresh(document)
        logger.info("Primary RFT for project %s is now %s", project_id, document_id)
        return document

    def delete_document(self, project_id: str, document_id: str) -> ProjectDocument:
        document = self.get_document_or_404(project_id, document_id)
        self.db.delete(document)
        self.db.commit()
        return document
