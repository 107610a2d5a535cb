"""
Context assembly for generation stages.

Gathers the project metadata, organization capability documents and RFT
documents into named sections and estimates their size against the model
input budget. Assembly never fails on size; validate_context_size() and
ensure_within_budget() are the gates that budget-sensitive stages call.
"""
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Protocol

from tender_engine.config.settings import settings
from tender_engine.errors import ContextTooLargeError, NotFoundError
from tender_engine.models import CompanyProfile, ProjectInfo, SourceDocument

logger = logging.getLogger(__name__)


class ContextSource(Protocol):
    """Read access the assembler needs from the persistence layer."""

    def get_project_info(self, project_id: str) -> ProjectInfo | None: ...

    def get_company_profile(self, organization_id: str) -> CompanyProfile | None: ...

    def list_organization_documents(self, organization_id: str) -> list[SourceDocument]: ...

    def list_project_documents(self, project_id: str) -> list[SourceDocument]: ...


@dataclass
class ContextSection:
    title: str
    text: str
    category: str | None = None

    def render(self) -> str:
        header = f"### {self.title}"
        if self.category:
            header += f"\nCategory: {self.category}"
        return f"{header}\n{self.text}"


@dataclass
class ContextValidation:
    valid: bool
    token_estimate: int
    warning: str | None = None


@dataclass
class ContextBundle:
    project: ProjectInfo
    organization_docs: list[ContextSection] = field(default_factory=list)
    rft_docs: list[ContextSection] = field(default_factory=list)

    @staticmethod
    def _join(sections: list[ContextSection]) -> str:
        # Sections without extracted text stay in the bundle but add nothing
        rendered = [section.render() for section in sections if section.text.strip()]
        return settings.context.section_separator.join(rendered)

    @property
    def organization_text(self) -> str:
        return self._join(self.organization_docs)

    @property
    def rft_text(self) -> str:
        return self._join(self.rft_docs)

    @property
    def project_json(self) -> str:
        return json.dumps(self.project.to_dict(), sort_keys=True)

    def total_characters(self) -> int:
        return len(self.project_json) + len(self.organization_text) + len(self.rft_text)

    def token_estimate(self) -> int:
        return math.ceil(self.total_characters() / settings.context.chars_per_token)

    def summary(self) -> dict:
        return {
            "project_id": self.project.id,
            "organization_documents": len(self.organization_docs),
            "rft_documents": len(self.rft_docs),
            "characters": self.total_characters(),
        }


def estimate_tokens(text: str) -> int:
    """Size estimate in model units: characters divided by four, rounded up."""
    return math.ceil(len(text) / settings.context.chars_per_token)


def _section_for(document: SourceDocument, rft: bool = False) -> ContextSection:
    title = document.name
    if rft and document.is_primary_rft:
        title += " (Primary RFT)"
    return ContextSection(
        title=title,
        text=document.text if document.has_text else "",
        category=None if rft else document.category,
    )


def assemble_project_context(source: ContextSource, project_id: str) -> ContextBundle:
    """
    Build the context bundle for a project.

    Organization documents follow an optional company profile section; the
    primary RFT is listed first among the RFT documents. Documents whose text
    extraction failed contribute empty sections.
    """
    project = source.get_project_info(project_id)
    if project is None:
        raise NotFoundError("Project", project_id)

    organization_docs: list[ContextSection] = []
    profile = source.get_company_profile(project.organization_id)
    if profile is not None:
        organization_docs.append(ContextSection(title="Company Profile", text=profile.to_text()))
    organization_docs.extend(
        _section_for(document) for document in source.list_organization_documents(project.organization_id)
    )

    rft_documents = sorted(
        source.list_project_documents(project_id), key=lambda document: not document.is_primary_rft
    )
    rft_docs = [_section_for(document, rft=True) for document in rft_documents]

    bundle = ContextBundle(project=project, organization_docs=organization_docs, rft_docs=rft_docs)
    missing = [document.name for document in rft_documents if not document.has_text]
    if missing:
        logger.info("Project %s has RFT documents without extracted text: %s", project_id, missing)
    logger.debug("Assembled context for project %s: %s", project_id, bundle.summary())
    return bundle


def validate_context_size(bundle: ContextBundle, budget: int | None = None) -> ContextValidation:
    """Compare the bundle's estimate against the budget."""
    budget = budget or settings.context.token_budget
    estimate = bundle.token_estimate()

    if estimate > budget:
        return ContextValidation(
            valid=False,
            token_estimate=estimate,
            warning=(
                f"Context exceeds token limit ({estimate:,} > {budget:,}). "
                "Remove or shorten some documents before generating."
            ),
        )

    warning = None
    if estimate > budget * settings.context.warning_ratio:
        warning = f"Context is approaching the token limit ({estimate:,} of {budget:,})."
    return ContextValidation(valid=True, token_estimate=estimate, warning=warning)


def ensure_within_budget(bundle: ContextBundle, budget: int | None = None) -> ContextValidation:
    """Raise ContextTooLargeError unless the bundle fits the budget."""
    validation = validate_context_size(bundle, budget)
    if not validation.valid:
        logger.warning(
            "Rejecting generation for project %s: %s tokens", bundle.project.id, validation.token_estimate
        )
        raise ContextTooLargeError(validation.token_estimate, validation.warning)
    return validation
