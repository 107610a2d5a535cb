"""
Per-request context: the verified caller plus the handles every service needs.
"""
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from tender_api.services.context_source import SqlContextSource
from tender_api.services.organization_service import OrganizationService
from tender_api.services.project_service import ProjectService
from tender_api.services.storage import LocalFileStorage
from tender_api.services.work_package_service import WorkPackageService
from tender_engine.config.llm_config import LLMClient


@dataclass
class RequestContext:
    user_id: str
    db: Session
    llm: LLMClient
    storage: LocalFileStorage
    organizations: OrganizationService = field(init=False)
    projects: ProjectService = field(init=False)
    work_packages: WorkPackageService = field(init=False)
    context_source: SqlContextSource = field(init=False)

    def __post_init__(self):
        self.organizations = OrganizationService(self.db)
        self.projects = ProjectService(self.db)
        self.work_packages = WorkPackageService(self.db)
        self.context_source = SqlContextSource(self.db)
