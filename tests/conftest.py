"""
Pytest configuration and shared fixtures for Tender Writer tests.

Provides:
- Database fixtures with test isolation
- A scripted mock LLM and temporary file storage
- Sample data factories
- API client fixtures for integration tests
"""
from typing import Any, Callable, Generator, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tender_api.core.database import get_db
from tender_api.core.errors import register_exception_handlers
from tender_api.dependencies import get_llm_client, get_storage
from tender_api.models.database import (
    Base,
    Organization,
    OrganizationDocument,
    Project,
    ProjectDocument,
    WorkPackage,
    WorkPackageContent,
)
from tender_api.routes import exports, organizations, projects, work_packages
from tender_api.services.storage import LocalFileStorage
from tender_engine.config.mock_llm import MockLLMClient
from tender_engine.workflow import WorkPackageStatus

TEST_USER_HEADERS = {"X-User-Id": "user-123"}


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def test_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """Create a test database session with automatic rollback."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def override_get_db(db_session):
    """Override the get_db dependency for FastAPI testing."""
    def _override():
        try:
            yield db_session
        finally:
            pass
    return _override


# =============================================================================
# Mock Fixtures
# =============================================================================

@pytest.fixture
def mock_llm() -> MockLLMClient:
    """Deterministic LLM; set mock_llm.responses[task_type] to script a stage."""
    return MockLLMClient()


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "storage", "test-secret", download_path="/api/exports/download")


# =============================================================================
# Sample Data Factories
# =============================================================================

@pytest.fixture
def sample_organization(db_session) -> Organization:
    organization = Organization(
        name="Acme Consulting",
        settings={
            "profile": {
                "company_name": "Acme Consulting Ltd",
                "industry": "Engineering services",
                "services_offered": ["Asset management", "Design"],
                "certifications": ["ISO 9001"],
            }
        },
    )
    db_session.add(organization)
    db_session.commit()
    db_session.refresh(organization)
    return organization


@pytest.fixture
def sample_project(db_session, sample_organization) -> Project:
    project = Project(
        organization_id=sample_organization.id,
        name="City Bridge Maintenance",
        client_name="Example City Council",
        instructions="Emphasise local delivery.",
    )
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


@pytest.fixture
def make_organization_document(db_session) -> Callable[..., OrganizationDocument]:
    def _make(
        organization: Organization,
        name: str = "Case Study.pdf",
        text: Optional[str] = "We maintained 40 bridges for a regional authority.",
        category: str = "case_study",
    ) -> OrganizationDocument:
        document = OrganizationDocument(
            organization_id=organization.id,
            name=name,
            file_path=f"organizations/{organization.id}/{name}",
            file_type="application/pdf",
            file_size=len(text or ""),
            content_text=text,
            content_extracted=text is not None,
            category=category,
        )
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document
    return _make


@pytest.fixture
def make_project_document(db_session) -> Callable[..., ProjectDocument]:
    def _make(
        project: Project,
        name: str = "RFT.pdf",
        text: Optional[str] = "The contractor shall inspect all bridges annually.",
        is_primary_rft: bool = False,
    ) -> ProjectDocument:
        document = ProjectDocument(
            project_id=project.id,
            name=name,
            file_path=f"projects/{project.id}/{name}",
            file_type="application/pdf",
            file_size=len(text or ""),
            content_text=text,
            content_extracted=text is not None,
            is_primary_rft=is_primary_rft,
        )
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document
    return _make


@pytest.fixture
def make_work_package(db_session) -> Callable[..., WorkPackage]:
    def _make(
        project: Project,
        document_type: str = "Methodology Statement",
        order: int = 0,
        status: WorkPackageStatus = WorkPackageStatus.PENDING,
        requirements: Optional[list[dict[str, Any]]] = None,
        win_themes: Optional[list[str]] = None,
        bid_analysis: Optional[dict[str, Any]] = None,
        content: Optional[str] = None,
    ) -> WorkPackage:
        work_package = WorkPackage(
            project_id=project.id,
            document_type=document_type,
            order=order,
            status=status,
            requirements=requirements or [],
        )
        db_session.add(work_package)
        db_session.flush()
        if win_themes is not None or bid_analysis is not None or content is not None:
            db_session.add(WorkPackageContent(
                work_package_id=work_package.id,
                win_themes=win_themes,
                bid_analysis=bid_analysis,
                content=content,
            ))
        db_session.commit()
        db_session.refresh(work_package)
        return work_package
    return _make


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================

@pytest.fixture
def app(override_get_db, mock_llm, storage) -> FastAPI:
    """Minimal test app with all routers and dependency overrides."""
    test_app = FastAPI()
    register_exception_handlers(test_app)
    test_app.include_router(organizations.router, prefix="/api/organizations")
    test_app.include_router(projects.router, prefix="/api/projects")
    test_app.include_router(work_packages.router, prefix="/api/work-packages")
    test_app.include_router(exports.router, prefix="/api/exports")
    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_llm_client] = lambda: mock_llm
    test_app.dependency_overrides[get_storage] = lambda: storage
    return test_app


@pytest.fixture
def client(app) -> TestClient:
    """Client sending the identity header on every request."""
    return TestClient(app, headers=TEST_USER_HEADERS)


@pytest.fixture
def anonymous_client(app) -> TestClient:
    return TestClient(app)
