"""
Plain data types passed between the pipeline stages.

The HTTP service maps its ORM rows onto these, so the pipeline never touches
a database session.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable


@dataclass
class Requirement:
    """One requirement a work package must answer."""
    text: str
    priority: str = "mandatory"
    id: str | None = None
    source: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> "Requirement":
        """Accept a bare requirement string or a stored record."""
        if isinstance(value, Requirement):
            return value
        if isinstance(value, str):
            return cls(text=value)
        if isinstance(value, dict):
            text = value.get("text") or value.get("requirement") or ""
            priority = value.get("priority") or "mandatory"
            if priority not in ("mandatory", "optional"):
                priority = "mandatory"
            return cls(text=str(text), priority=priority, id=value.get("id"), source=value.get("source"))
        raise TypeError(f"Unsupported requirement value: {value!r}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def normalize_requirements(values: Iterable[Any] | str | dict | None) -> list[Requirement]:
    """
    Coerce a mixed list into Requirements, dropping blanks, keeping order.

    A bare string or record counts as a single requirement.

    Raises:
        TypeError: an item is neither a string nor a record
    """
    if isinstance(values, (str, dict, Requirement)):
        values = [values]
    requirements = []
    for value in values or []:
        requirement = Requirement.from_value(value)
        if requirement.text.strip():
            requirements.append(requirement)
    return requirements


@dataclass
class CompanyProfile:
    company_name: str | None = None
    company_description: str | None = None
    industry: str | None = None
    services_offered: list[str] = field(default_factory=list)
    key_projects: str | None = None
    certifications: list[str] = field(default_factory=list)
    differentiators: str | None = None

    @classmethod
    def from_settings(cls, org_settings: dict[str, Any] | None) -> "CompanyProfile | None":
        """Read the profile stored under an organization's settings, if any."""
        profile = (org_settings or {}).get("profile")
        if not isinstance(profile, dict):
            return None
        known = {name: profile.get(name) for name in cls.__dataclass_fields__ if profile.get(name) is not None}
        result = cls(**known)
        return None if result.is_empty() else result

    def is_empty(self) -> bool:
        return not any(asdict(self).values())

    def to_text(self) -> str:
        lines = []
        if self.company_name:
            lines.append(f"Company: {self.company_name}")
        if self.industry:
            lines.append(f"Industry: {self.industry}")
        if self.company_description:
            lines.append(f"Description: {self.company_description}")
        if self.services_offered:
            lines.append(f"Services: {', '.join(self.services_offered)}")
        if self.certifications:
            lines.append(f"Certifications: {', '.join(self.certifications)}")
        if self.key_projects:
            lines.append(f"Key projects: {self.key_projects}")
        if self.differentiators:
            lines.append(f"Differentiators: {self.differentiators}")
        return "\n".join(lines)


@dataclass
class SourceDocument:
    """An organization or RFT document as seen by context assembly."""
    id: str
    name: str
    text: str | None = None
    category: str | None = None
    is_primary_rft: bool = False

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


@dataclass
class ProjectInfo:
    id: str
    organization_id: str
    name: str
    client_name: str | None = None
    deadline: str | None = None
    instructions: str | None = None
    status: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class WorkPackageInfo:
    id: str
    project_id: str
    document_type: str
    description: str | None = None
    requirements: list[Requirement] = field(default_factory=list)
    order: int = 0
    status: str = "pending"


@dataclass
class BidCriterion:
    name: str
    score: float
    weight: float
    weighted_score: float
    reasoning: str = ""


@dataclass
class BidAnalysis:
    criteria: list[BidCriterion]
    total_score: int
    recommendation: str
    reasoning: str = ""
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class StrategyResult:
    bid_analysis: BidAnalysis
    win_themes: list[str]


@dataclass
class DocumentSuggestion:
    """A deliverable identified by RFT analysis."""
    document_type: str
    description: str = ""
    requirements: list[Requirement] = field(default_factory=list)


@dataclass
class BatchItem:
    """Outcome for one work package of a batch generation."""
    work_package_id: str
    success: bool
    bid_analysis: BidAnalysis | None = None
    win_themes: list[str] = field(default_factory=list)
    content: str | None = None
    error: str | None = None


@dataclass
class BatchResult:
    # "batch_prompt" or "fallback_sequential"
    execution_mode: str
    items: list[BatchItem]
