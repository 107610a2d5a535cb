"""
Organization and capability document persistence.
"""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from tender_api.models.database import Organization, OrganizationDocument
from tender_api.services.document_ingest import IngestedFile
from tender_engine.errors import NotFoundError

logger = logging.getLogger(__name__)


class OrganizationService:
    """Service for organization operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, name: str, settings: Optional[dict[str, Any]] = None) -> Organization:
        organization = Organization(name=name, settings=settings or {})
        self.db.add(organization)
        self.db.commit()
        self.db.refresh(organization)
        logger.info("Created organization %s", organization.id)
        return organization

    def get(self, organization_id: str) -> Optional[Organization]:
        return self.db.query(Organization).filter(Organization.id == organization_id).first()

    def get_or_404(self, organization_id: str) -> Organization:
        organization = self.get(organization_id)
        if organization is None:
            raise NotFoundError("Organization", organization_id)
        return organization

    def update(
        self,
        organization_id: str,
        name: Optional[str] = None,
        settings: Optional[dict[str, Any]] = None,
    ) -> Organization:
        """Update the name and merge settings keys into the stored settings."""
        organization = self.get_or_404(organization_id)
        if name is not None:
            organization.name = name
        if settings is not None:
            # Reassign so the JSON column is flagged dirty
            organization.settings = {**(organization.settings or {}), **settings}
        self.db.commit()
        self.db.refresh(organization)
        return organization

    def add_document(
        self,
        organization_id: str,
        name: str,
        file_type: Optional[str],
        ingested: IngestedFile,
        category: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> OrganizationDocument:
        document = OrganizationDocument(
            organization_id=organization_id,
            name=name,
            file_path=ingested.file_path,
            file_type=file_type,
            file_size=ingested.file_size,
            content_text=ingested.content_text,
            content_extracted=ingested.content_extracted,
            category=category,
            tags=tags or [],
        )
        self.db.add(document)
        self.db.commit()
        self.db.refresh(document)
        return document

    def list_documents(self, organization_id: str) -> list[OrganizationDocument]:
        return (
            self.db.query(OrganizationDocument)
            .filter(OrganizationDocument.organization_id == organization_id)
            .order_by(OrganizationDocument.uploaded_at)
            .all()
        )

    def get_document_or_404(self, organization_id: str, document_id: str) -> OrganizationDocument:
        document = (
            self.db.query(OrganizationDocument)
            .filter(
                OrganizationDocument.id == document_id,
                OrganizationDocument.organization_id == organization_id,
            )
            .first()
        )
        if document is None:
            raise NotFoundError("Document", document_id)
        return document

    def delete_document(self, organization_id: str, document_id: str) -> OrganizationDocument:
        document = self.get_document_or_404(organization_id, document_id)
        self.db.delete(document)
        self.db.commit()
        return document
