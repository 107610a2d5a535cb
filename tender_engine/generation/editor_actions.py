"""
Editor actions as one type per action kind.

Each variant carries exactly the context its prompt needs, so a
check_compliance action cannot be built without requirements and a custom
action cannot be built without an instruction.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from tender_engine.errors import InvalidActionError, ValidationError
from tender_engine.generation import prompts
from tender_engine.models import Requirement


class EditorActionType(str, Enum):
    """Available editor actions."""

    EXPAND = "expand"
    SHORTEN = "shorten"
    ADD_EVIDENCE = "add_evidence"
    REPHRASE = "rephrase"
    CHECK_COMPLIANCE = "check_compliance"
    CUSTOM = "custom"


@dataclass
class ExpandAction:
    selected_text: str
    full_document: str
    organization_text: str
    kind = EditorActionType.EXPAND

    def build_prompt(self) -> str:
        return prompts.build_expand_prompt(self.selected_text, self.full_document, self.organization_text)


@dataclass
class ShortenAction:
    selected_text: str
    kind = EditorActionType.SHORTEN

    def build_prompt(self) -> str:
        return prompts.build_shorten_prompt(self.selected_text)


@dataclass
class AddEvidenceAction:
    selected_text: str
    organization_text: str
    kind = EditorActionType.ADD_EVIDENCE

    def build_prompt(self) -> str:
        return prompts.build_add_evidence_prompt(self.selected_text, self.organization_text)


@dataclass
class RephraseAction:
    selected_text: str
    tone: str | None = None
    kind = EditorActionType.REPHRASE

    def build_prompt(self) -> str:
        return prompts.build_rephrase_prompt(self.selected_text, self.tone)


@dataclass
class CheckComplianceAction:
    selected_text: str
    requirements: list[Requirement] = field(default_factory=list)
    kind = EditorActionType.CHECK_COMPLIANCE

    def build_prompt(self) -> str:
        return prompts.build_check_compliance_prompt(self.selected_text, self.requirements)


@dataclass
class CustomAction:
    selected_text: str
    full_document: str
    instruction: str
    kind = EditorActionType.CUSTOM

    def build_prompt(self) -> str:
        return prompts.build_custom_prompt(self.selected_text, self.full_document, self.instruction)


EditorAction = Union[
    ExpandAction, ShortenAction, AddEvidenceAction, RephraseAction, CheckComplianceAction, CustomAction
]


def parse_editor_action(
    action: str,
    selected_text: str,
    full_document: str = "",
    organization_text: str = "",
    requirements: list[Requirement] | None = None,
    custom_instruction: str | None = None,
    tone: str | None = None,
) -> EditorAction:
    """
    Build the action variant for a request.

    Raises:
        InvalidActionError: unknown action name
        ValidationError: no text to act on, or custom action without instruction
    """
    try:
        kind = EditorActionType(action)
    except ValueError:
        raise InvalidActionError(action) from None

    # Whole-document actions fall back to the full document when nothing is selected
    text = selected_text if selected_text and selected_text.strip() else full_document
    if not text or not text.strip():
        raise ValidationError("Selected text or document content is required")

    if kind is EditorActionType.EXPAND:
        return ExpandAction(text, full_document or text, organization_text)
    if kind is EditorActionType.SHORTEN:
        return ShortenAction(text)
    if kind is EditorActionType.ADD_EVIDENCE:
        return AddEvidenceAction(text, organization_text)
    if kind is EditorActionType.REPHRASE:
        return RephraseAction(text, tone)
    if kind is EditorActionType.CHECK_COMPLIANCE:
        return CheckComplianceAction(text, list(requirements or []))

    if not custom_instruction or not custom_instruction.strip():
        raise ValidationError("custom_instruction is required for the custom action")
    return CustomAction(text, full_document or text, custom_instruction.strip())
