"""
Work package API endpoints.

Provides endpoints for:
- Creating, reading and updating work packages
- Running the generation stages (requirements, strategy, win themes, content)
- Editor actions on drafted content
- Exporting a package to DOCX
"""

import logging

from fastapi import APIRouter, status

from tender_api.dependencies import ContextDep
from tender_api.schemas.work_packages import (
    ContentResponse,
    ContentUpdate,
    EditorActionRequest,
    EditorActionResponse,
    ExportResponse,
    GenerateContentRequest,
    RequirementsResponse,
    StrategyResponse,
    WinThemesResponse,
    WorkflowResponse,
    WorkPackageContentResponse,
    WorkPackageCreate,
    WorkPackageResponse,
    WorkPackageUpdate,
)
from tender_api.services.export_service import ExportService
from tender_api.services.generation_service import GenerationService
from tender_engine.errors import ValidationError
from tender_engine.workflow import STAGE_ORDER, accessible_stages, completed_steps, next_stage

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=WorkPackageResponse, status_code=status.HTTP_201_CREATED)
def create_work_package(data: WorkPackageCreate, ctx: ContextDep):
    """Create a work package at the end of the project's order."""
    return ctx.work_packages.create(
        data.project_id,
        data.document_type,
        description=data.description,
        requirements=data.requirement_values(),
    )


@router.get("/{work_package_id}", response_model=WorkPackageResponse)
def get_work_package(work_package_id: str, ctx: ContextDep):
    return ctx.work_packages.get_or_404(work_package_id)


@router.patch("/{work_package_id}", response_model=WorkPackageResponse)
def update_work_package(work_package_id: str, data: WorkPackageUpdate, ctx: ContextDep):
    work_package = ctx.work_packages.get_or_404(work_package_id)
    return ctx.work_packages.update(
        work_package,
        document_type=data.document_type,
        description=data.description,
        requirements=data.requirement_values(),
    )


@router.get("/{work_package_id}/workflow", response_model=WorkflowResponse)
def get_workflow(work_package_id: str, ctx: ContextDep):
    """Completed and accessible workflow stages, derived from stored content."""
    work_package = ctx.work_packages.get_or_404(work_package_id)
    content = ctx.work_packages.get_content(work_package.id)
    completed = completed_steps(work_package.requirements, content)
    current = next_stage(completed)
    return WorkflowResponse(
        work_package_id=work_package.id,
        status=work_package.status,
        completed_steps=[stage.value for stage in STAGE_ORDER if stage in completed],
        accessible_stages=[stage.value for stage in accessible_stages(completed, current)],
        next_stage=current.value if current else None,
    )


@router.get("/{work_package_id}/content", response_model=WorkPackageContentResponse)
def get_content(work_package_id: str, ctx: ContextDep):
    work_package = ctx.work_packages.get_or_404(work_package_id)
    content = ctx.work_packages.get_content(work_package.id)
    if content is None:
        return WorkPackageContentResponse(work_package_id=work_package.id)
    return content


@router.put("/{work_package_id}/content", response_model=WorkPackageContentResponse)
def save_content(work_package_id: str, data: ContentUpdate, ctx: ContextDep):
    """Save edited content."""
    work_package = ctx.work_packages.get_or_404(work_package_id)
    if not data.content.strip():
        raise ValidationError("content cannot be empty")
    return ctx.work_packages.save_content(work_package, data.content)


@router.post("/{work_package_id}/extract-requirements", response_model=RequirementsResponse)
def extract_requirements(work_package_id: str, ctx: ContextDep):
    requirements = GenerationService(ctx).extract_requirements(work_package_id)
    return {"requirements": [r.to_dict() for r in requirements]}


@router.post("/{work_package_id}/generate-strategy", response_model=StrategyResponse)
def generate_strategy(work_package_id: str, ctx: ContextDep):
    """Generate bid analysis and win themes together."""
    result = GenerationService(ctx).generate_strategy(work_package_id)
    return StrategyResponse(bid_analysis=result.bid_analysis.to_dict(), win_themes=result.win_themes)


@router.post("/{work_package_id}/win-themes", response_model=WinThemesResponse)
def generate_win_themes(work_package_id: str, ctx: ContextDep):
    return {"win_themes": GenerationService(ctx).generate_win_themes(work_package_id)}


@router.post("/{work_package_id}/generate-content", response_model=ContentResponse)
def generate_content(work_package_id: str, ctx: ContextDep, data: GenerateContentRequest | None = None):
    """
    Draft the full document.

    Requires win themes; moves the package to in_progress before the model call.
    """
    instructions = data.instructions if data else None
    return {"content": GenerationService(ctx).generate_content(work_package_id, instructions)}


@router.post("/{work_package_id}/editor-action", response_model=EditorActionResponse)
def editor_action(work_package_id: str, data: EditorActionRequest, ctx: ContextDep):
    modified = GenerationService(ctx).editor_action(
        work_package_id,
        data.action,
        data.selected_text,
        full_document=data.full_document,
        custom_instruction=data.custom_instruction,
        tone=data.tone,
    )
    return {"modified_text": modified}


@router.post("/{work_package_id}/export", response_model=ExportResponse)
def export_work_package(work_package_id: str, ctx: ContextDep):
    """Export to DOCX and return a signed download link valid for one hour."""
    return ExportService(ctx).export_work_package(work_package_id)
