"""
Pydantic schemas for work package routes.
"""
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

from tender_engine.workflow import WorkPackageStatus


class RequirementSchema(BaseModel):
    id: Optional[str] = None
    text: str
    priority: str = "mandatory"
    source: Optional[str] = None

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: str) -> str:
        if v not in ("mandatory", "optional"):
            raise ValueError("priority must be 'mandatory' or 'optional'")
        return v


RequirementInput = Union[str, RequirementSchema]


def _dump_requirements(values: Optional[list[RequirementInput]]) -> Optional[list[Any]]:
    if values is None:
        return None
    return [v.model_dump() if isinstance(v, RequirementSchema) else v for v in values]


class WorkPackageCreate(BaseModel):
    project_id: str
    document_type: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    requirements: Optional[list[RequirementInput]] = None

    @field_validator("document_type")
    @classmethod
    def validate_document_type(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("document_type cannot be empty")
        return v.strip()

    def requirement_values(self) -> Optional[list[Any]]:
        return _dump_requirements(self.requirements)


class WorkPackageUpdate(BaseModel):
    document_type: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    requirements: Optional[list[RequirementInput]] = None

    def requirement_values(self) -> Optional[list[Any]]:
        return _dump_requirements(self.requirements)


class WorkPackageResponse(BaseModel):
    id: str
    project_id: str
    document_type: str
    document_description: Optional[str] = None
    requirements: list[RequirementSchema] = []
    status: WorkPackageStatus
    order: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WorkPackageContentResponse(BaseModel):
    work_package_id: str
    bid_analysis: Optional[dict[str, Any]] = None
    win_themes: Optional[list[str]] = None
    content: Optional[str] = None
    exported_file_path: Optional[str] = None
    exported_at: Optional[datetime] = None
    content_version: int = 0

    model_config = {"from_attributes": True}


class ContentUpdate(BaseModel):
    content: str


class RequirementsResponse(BaseModel):
    requirements: list[RequirementSchema]


class StrategyResponse(BaseModel):
    bid_analysis: dict[str, Any] = Field(serialization_alias="bidAnalysis")
    win_themes: list[str] = Field(serialization_alias="winThemes")


class WinThemesResponse(BaseModel):
    win_themes: list[str]


class GenerateContentRequest(BaseModel):
    instructions: Optional[str] = None


class ContentResponse(BaseModel):
    content: str


class EditorActionRequest(BaseModel):
    action: str
    selected_text: str = ""
    full_document: str = ""
    custom_instruction: Optional[str] = None
    tone: Optional[str] = None


class EditorActionResponse(BaseModel):
    modified_text: str


class ExportResponse(BaseModel):
    download_url: str
    filename: str


class WorkflowResponse(BaseModel):
    work_package_id: str
    status: WorkPackageStatus
    completed_steps: list[str]
    accessible_stages: list[str]
    next_stage: Optional[str] = None
