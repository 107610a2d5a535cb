"""
Organization API endpoints: settings, company profile and capability documents.
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile, status

from tender_api.dependencies import ContextDep
from tender_api.routes.uploads import read_upload
from tender_api.schemas.projects import (
    DocumentResponse,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
)
from tender_api.services.document_ingest import ingest_upload

# Module-level File dependency for required file uploads
_REQUIRED_FILE = File(...)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
def create_organization(data: OrganizationCreate, ctx: ContextDep):
    settings = dict(data.settings)
    if data.profile is not None:
        settings["profile"] = data.profile.model_dump()
    return ctx.organizations.create(data.name, settings)


@router.get("/{organization_id}", response_model=OrganizationResponse)
def get_organization(organization_id: str, ctx: ContextDep):
    return ctx.organizations.get_or_404(organization_id)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
def update_organization(organization_id: str, data: OrganizationUpdate, ctx: ContextDep):
    """Update the name, settings or company profile."""
    settings = dict(data.settings) if data.settings is not None else None
    if data.profile is not None:
        settings = settings or {}
        settings["profile"] = data.profile.model_dump()
    return ctx.organizations.update(organization_id, name=data.name, settings=settings)


@router.post(
    "/{organization_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_organization_document(
    organization_id: str,
    ctx: ContextDep,
    file: UploadFile = _REQUIRED_FILE,
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
):
    """Upload a capability document; tags are comma separated."""
    ctx.organizations.get_or_404(organization_id)
    data = await read_upload(file)
    ingested = ingest_upload(
        ctx.storage, f"organizations/{organization_id}", file.filename, file.content_type, data
    )
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else []
    return ctx.organizations.add_document(
        organization_id, file.filename, file.content_type, ingested, category=category, tags=tag_list
    )


@router.get("/{organization_id}/documents", response_model=list[DocumentResponse])
def list_organization_documents(organization_id: str, ctx: ContextDep):
    ctx.organizations.get_or_404(organization_id)
    return ctx.organizations.list_documents(organization_id)


@router.delete("/{organization_id}/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_organization_document(organization_id: str, document_id: str, ctx: ContextDep):
    document = ctx.organizations.delete_document(organization_id, document_id)
    ctx.storage.delete(document.file_path)
