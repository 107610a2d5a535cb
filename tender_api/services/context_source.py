"""
SQLAlchemy-backed source for context assembly.
"""
from typing import Optional

from sqlalchemy.orm import Session

from tender_api.models.database import Organization, OrganizationDocument, Project, ProjectDocument
from tender_engine.models import CompanyProfile, ProjectInfo, SourceDocument


class SqlContextSource:
    """Maps ORM rows onto the pipeline's plain data types."""

    def __init__(self, db: Session):
        self.db = db

    def get_project_info(self, project_id: str) -> Optional[ProjectInfo]:
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if project is None:
            return None
        return ProjectInfo(
            id=project.id,
            organization_id=project.organization_id,
            name=project.name,
            client_name=project.client_name,
            deadline=project.deadline.date().isoformat() if project.deadline else None,
            instructions=project.instructions,
            status=project.status.value if project.status else None,
        )

    def get_company_profile(self, organization_id: str) -> Optional[CompanyProfile]:
        organization = self.db.query(Organization).filter(Organization.id == organization_id).first()
        if organization is None:
            return None
        return CompanyProfile.from_settings(organization.settings)

    def list_organization_documents(self, organization_id: str) -> list[SourceDocument]:
        rows = (
            self.db.query(OrganizationDocument)
            .filter(OrganizationDocument.organization_id == organization_id)
            .order_by(OrganizationDocument.uploaded_at)
            .all()
        )
        return [
            SourceDocument(
                id=row.id,
                name=row.name,
                text=row.content_text if row.content_extracted else None,
                category=row.category,
            )
            for row in rows
        ]

    def list_project_documents(self, project_id: str) -> list[SourceDocument]:
        rows = (
            self.db.query(ProjectDocument)
            .filter(ProjectDocument.project_id == project_id)
            .order_by(ProjectDocument.uploaded_at)
            .all()
        )
        return [
            SourceDocument(
                id=row.id,
                name=row.name,
                text=row.content_text if row.content_extracted else None,
                category=row.category,
                is_primary_rft=bool(row.is_primary_rft),
            )
            for row in rows
        ]
