"""
Database models for organizations, projects, documents and work packages.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

from tender_engine.workflow import WorkPackageStatus

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectStatus(str, PyEnum):
    """Project status enumeration."""

    SETUP = "setup"
    ANALYSIS = "analysis"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Organization(Base):
    """An organization responding to tenders."""

    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    # Free-form settings; the company profile lives under "profile"
    settings = Column(JSON, default=lambda: {})
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    documents = relationship(
        "OrganizationDocument", back_populates="organization", cascade="all, delete-orphan"
    )
    projects = relationship("Project", back_populates="organization", cascade="all, delete-orphan")


class OrganizationDocument(Base):
    """A capability document (case study, certification, CV, ...)."""

    __tablename__ = "organization_documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    file_type = Column(String)
    file_size = Column(Integer, default=0)
    content_text = Column(Text, nullable=True)
    content_extracted = Column(Boolean, default=False)
    category = Column(String, nullable=True)
    tags = Column(JSON, default=lambda: [])
    uploaded_at = Column(DateTime, default=_utcnow)

    organization = relationship("Organization", back_populates="documents")


class Project(Base):
    """A tender response project."""

    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_uuid)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    client_name = Column(String, nullable=True)
    deadline = Column(DateTime, nullable=True)
    instructions = Column(Text, nullable=True)
    status = Column(Enum(ProjectStatus), default=ProjectStatus.SETUP)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    organization = relationship("Organization", back_populates="projects")
    documents = relationship("ProjectDocument", back_populates="project", cascade="all, delete-orphan")
    work_packages = relationship(
        "WorkPackage",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="WorkPackage.order",
    )


class ProjectDocument(Base):
    """An RFT document uploaded to a project."""

    __tablename__ = "project_documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    file_type = Column(String)
    file_size = Column(Integer, default=0)
    content_text = Column(Text, nullable=True)
    content_extracted = Column(Boolean, default=False)
    category = Column(String, nullable=True)
    tags = Column(JSON, default=lambda: [])
    is_primary_rft = Column(Boolean, default=False)
    uploaded_at = Column(DateTime, default=_utcnow)

    project = relationship("Project", back_populates="documents")


class WorkPackage(Base):
    """One deliverable document within a project."""

    __tablename__ = "work_packages"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    document_type = Column(String, nullable=False)
    document_description = Column(Text, nullable=True)
    # Ordered list of {id, text, priority, source}
    requirements = Column(JSON, default=lambda: [])
    status = Column(Enum(WorkPackageStatus), default=WorkPackageStatus.PENDING, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    project = relationship("Project", back_populates="work_packages")
    content = relationship(
        "WorkPackageContent",
        back_populates="work_package",
        uselist=False,
        cascade="all, delete-orphan",
    )


class WorkPackageContent(Base):
    """Generated output for a work package; created on first write."""

    __tablename__ = "work_package_contents"

    id = Column(String(36), primary_key=True, default=_uuid)
    work_package_id = Column(String(36), ForeignKey("work_packages.id"), unique=True, nullable=False)
    bid_analysis = Column(JSON, nullable=True)
    win_themes = Column(JSON, nullable=True)
    content = Column(Text, nullable=True)
    exported_file_path = Column(String, nullable=True)
    exported_at = Column(DateTime, nullable=True)
    # Incremented on every write
    content_version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    work_package = relationship("WorkPackage", back_populates="content")
