"""
Project API endpoints.

Provides endpoints for:
- Creating and updating projects
- Uploading RFT documents and choosing the primary RFT
- RFT analysis into work packages
- Batch generation of up to three work packages
- Context budget inspection
- Bulk export of completed work packages as a ZIP archive
"""

import logging
from typing import Optional

from fastapi import APIRouter, File, Form, Response, UploadFile, status

from tender_api.dependencies import ContextDep
from tender_api.routes.uploads import read_upload
from tender_api.schemas.projects import (
    AnalyzeRequest,
    AnalyzeResponse,
    BatchGenerateRequest,
    BatchGenerateResponse,
    ContextSummaryResponse,
    DocumentResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)
from tender_api.schemas.work_packages import WorkPackageResponse
from tender_api.services.document_ingest import ingest_upload
from tender_api.services.export_service import ExportService
from tender_api.services.generation_service import GenerationService
from tender_engine.context import assemble_project_context, validate_context_size

# Module-level File dependency for required file uploads
_REQUIRED_FILE = File(...)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(data: ProjectCreate, ctx: ContextDep):
    return ctx.projects.create(
        data.organization_id,
        data.name,
        client_name=data.client_name,
        deadline=data.deadline,
        instructions=data.instructions,
        created_by=ctx.user_id,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(project_id: str, ctx: ContextDep):
    return ctx.projects.get_or_404(project_id)


@router.patch("/{project_id}", response_model=ProjectResponse)
def update_project(project_id: str, data: ProjectUpdate, ctx: ContextDep):
    return ctx.projects.update(project_id, **data.model_dump(exclude_unset=True))


@router.get("/{project_id}/work-packages", response_model=list[WorkPackageResponse])
def list_work_packages(project_id: str, ctx: ContextDep):
    """Work packages in presentation order."""
    ctx.projects.get_or_404(project_id)
    return ctx.projects.list_work_packages(project_id)


@router.get("/{project_id}/context", response_model=ContextSummaryResponse)
def get_context_summary(project_id: str, ctx: ContextDep):
    """Size of the assembled context against the model input budget."""
    bundle = assemble_project_context(ctx.context_source, project_id)
    validation = validate_context_size(bundle)
    return ContextSummaryResponse(
        **bundle.summary(),
        valid=validation.valid,
        token_estimate=validation.token_estimate,
        warning=validation.warning,
    )


@router.post("/{project_id}/analyze", response_model=AnalyzeResponse)
def analyze_project(project_id: str, ctx: ContextDep, data: AnalyzeRequest | None = None):
    """Identify the documents the RFT asks for and create a work package for each."""
    work_packages = GenerationService(ctx).analyze_project(project_id, data.instructions if data else None)
    return {"work_packages": work_packages}


@router.post("/{project_id}/generate-batch", response_model=BatchGenerateResponse)
def generate_batch(project_id: str, data: BatchGenerateRequest, ctx: ContextDep):
    """Strategy, win themes and content for several work packages sharing one context."""
    result, saved = GenerationService(ctx).generate_batch(project_id, data.work_package_ids, data.instructions)
    return BatchGenerateResponse(
        execution_mode=result.execution_mode,
        results=saved,
        total_generated=sum(1 for item in result.items if item.success),
        total_saved=sum(1 for entry in saved if entry["success"]),
    )


@router.post("/{project_id}/export")
async def export_project(project_id: str, ctx: ContextDep):
    """
    ZIP of every completed work package's document, ordered by work package order.

    Content reads go through the synchronous session, so the fan-out in
    collect_export_documents runs them one after another.
    """
    filename, data = await ExportService(ctx).export_project(project_id)
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# RFT documents

@router.post("/{project_id}/documents", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_project_document(
    project_id: str,
    ctx: ContextDep,
    file: UploadFile = _REQUIRED_FILE,
    category: Optional[str] = Form(None),
    is_primary_rft: bool = Form(False),
):
    """Upload an RFT document; text extraction is best-effort."""
    ctx.projects.get_or_404(project_id)
    data = await read_upload(file)
    ingested = ingest_upload(ctx.storage, f"projects/{project_id}", file.filename, file.content_type, data)
    return ctx.projects.add_document(
        project_id,
        file.filename,
        file.content_type,
        ingested,
        category=category,
        is_primary_rft=is_primary_rft,
    )


@router.get("/{project_id}/documents", response_model=list[DocumentResponse])
def list_project_documents(project_id: str, ctx: ContextDep):
    ctx.projects.get_or_404(project_id)
    return ctx.projects.list_documents(project_id)


@router.post("/{project_id}/documents/{document_id}/primary", response_model=DocumentResponse)
def set_primary_document(project_id: str, document_id: str, ctx: ContextDep):
    """Make a document the primary RFT, clearing any previous primary."""
    return ctx.projects.set_primary_rft(project_id, document_id)


@router.delete("/{project_id}/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project_document(project_id: str, document_id: str, ctx: ContextDep):
    document = ctx.projects.delete_document(project_id, document_id)
    ctx.storage.delete(document.file_path)
