"""
Pydantic schemas for organization, project and document routes.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from tender_api.models.database import ProjectStatus
from tender_api.schemas.work_packages import WorkPackageResponse


class CompanyProfileSchema(BaseModel):
    company_name: Optional[str] = None
    company_description: Optional[str] = None
    industry: Optional[str] = None
    services_offered: list[str] = []
    key_projects: Optional[str] = None
    certifications: list[str] = []
    differentiators: Optional[str] = None


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    settings: dict[str, Any] = {}
    profile: Optional[CompanyProfileSchema] = None


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    settings: Optional[dict[str, Any]] = None
    profile: Optional[CompanyProfileSchema] = None


class OrganizationResponse(BaseModel):
    id: str
    name: str
    settings: dict[str, Any] = {}
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DocumentResponse(BaseModel):
    id: str
    name: str
    file_type: Optional[str] = None
    file_size: int = 0
    content_extracted: bool = False
    category: Optional[str] = None
    tags: list[str] = []
    is_primary_rft: bool = False
    uploaded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProjectCreate(BaseModel):
    organization_id: str
    name: str = Field(..., min_length=1, max_length=200)
    client_name: Optional[str] = None
    deadline: Optional[datetime] = None
    instructions: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    client_name: Optional[str] = None
    deadline: Optional[datetime] = None
    instructions: Optional[str] = None


class ProjectResponse(BaseModel):
    id: str
    organization_id: str
    name: str
    client_name: Optional[str] = None
    deadline: Optional[datetime] = None
    instructions: Optional[str] = None
    status: ProjectStatus
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AnalyzeRequest(BaseModel):
    instructions: Optional[str] = None


class AnalyzeResponse(BaseModel):
    work_packages: list[WorkPackageResponse]


class ContextSummaryResponse(BaseModel):
    project_id: str
    organization_documents: int
    rft_documents: int
    characters: int
    valid: bool
    token_estimate: int
    warning: Optional[str] = None


class BatchGenerateRequest(BaseModel):
    work_package_ids: list[str] = Field(..., min_length=1)
    instructions: Optional[str] = None


class BatchItemResponse(BaseModel):
    work_package_id: str
    success: bool
    error: Optional[str] = None


class BatchGenerateResponse(BaseModel):
    execution_mode: str
    results: list[BatchItemResponse]
    total_generated: int
    total_saved: int
