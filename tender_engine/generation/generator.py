"""
Stage generators.

Stateless functions: each takes an LLMClient plus the stage input and returns
structured output. Budget checks and persistence belong to the caller; these
functions only enforce the preconditions on their own inputs.
"""
import json
import logging
import re
from typing import Any

from tender_engine.config.llm_config import LLMClient
from tender_engine.context.assembler import ContextBundle
from tender_engine.errors import (
    BatchSchemaError,
    NoSourceTextError,
    PreconditionError,
    TenderError,
    UpstreamGenerationError,
)
from tender_engine.generation import prompts
from tender_engine.generation.editor_actions import EditorAction
from tender_engine.models import (
    BatchItem,
    BatchResult,
    BidAnalysis,
    BidCriterion,
    DocumentSuggestion,
    Requirement,
    StrategyResult,
    WorkPackageInfo,
    normalize_requirements,
)

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_response(text: str) -> Any:
    """Parse a model JSON response, tolerating Markdown code fences."""
    cleaned = _FENCE.sub("", text.strip()).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error("Model returned invalid JSON: %s", cleaned[:200])
        raise UpstreamGenerationError("Model returned an invalid JSON response") from e


def _join_rft_texts(rft_texts: list[str]) -> str:
    texts = [text.strip() for text in rft_texts if text and text.strip()]
    if not texts:
        raise NoSourceTextError()
    return "\n\n---\n\n".join(texts)


def score_bid_analysis(raw: dict[str, Any]) -> BidAnalysis:
    """
    Normalise a raw bid analysis.

    Scores are clamped to 0-5 and weighted equally; total_score is the weighted
    sum as a percentage.
    """
    raw_criteria = raw.get("criteria") or []
    if not isinstance(raw_criteria, list) or not all(isinstance(item, dict) for item in raw_criteria):
        raise UpstreamGenerationError("Model response contained malformed bid criteria")
    weight = 1 / len(raw_criteria) if raw_criteria else 0.0

    criteria = []
    for item in raw_criteria:
        try:
            score = float(item.get("score", 0))
        except (TypeError, ValueError):
            score = 0.0
        score = max(0.0, min(5.0, score))
        criteria.append(BidCriterion(
            name=str(item.get("name", "")),
            score=score,
            weight=weight,
            weighted_score=(score / 5) * weight,
            reasoning=str(item.get("reasoning", "")),
        ))

    total_score = round(sum(criterion.weighted_score for criterion in criteria) * 100)
    recommendation = str(raw.get("recommendation", "")).lower().replace("_", "-")
    if recommendation not in ("bid", "no-bid"):
        recommendation = "bid" if total_score >= 50 else "no-bid"

    return BidAnalysis(
        criteria=criteria,
        total_score=total_score,
        recommendation=recommendation,
        reasoning=str(raw.get("reasoning", "")),
        strengths=_string_list(raw.get("strengths")),
        weaknesses=_string_list(raw.get("weaknesses") or raw.get("concerns")),
    )


def _string_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        return [str(value)]
    return [str(item) for item in value]


def _model_requirements(value: Any) -> list[Requirement]:
    try:
        return normalize_requirements(value)
    except TypeError as e:
        raise UpstreamGenerationError("Model response contained a malformed requirement") from e


def _clean_themes(values: Any) -> list[str]:
    if not isinstance(values, list):
        raise UpstreamGenerationError("Model response did not contain a win theme list")
    themes = [str(theme).strip() for theme in values if str(theme).strip()]
    if not themes:
        raise UpstreamGenerationError("Model returned no win themes")
    return themes


def extract_requirements(llm: LLMClient, rft_texts: list[str], document_type: str) -> list[Requirement]:
    """Extract the ordered requirement list for one document type."""
    rft_text = _join_rft_texts(rft_texts)
    logger.info("Extracting requirements for %s from %s chars of RFT text", document_type, len(rft_text))

    response = llm.generate_text(
        prompts.build_extract_requirements_prompt(rft_text, document_type),
        task_type="requirement_extraction",
        system_message=prompts.TENDER_WRITER_SYSTEM,
    )
    parsed = parse_json_response(response)
    if isinstance(parsed, dict):
        parsed = parsed.get("requirements", [])
    if not isinstance(parsed, list):
        raise UpstreamGenerationError("Model response did not contain a requirement list")

    requirements = _model_requirements(parsed)
    for index, requirement in enumerate(requirements, start=1):
        requirement.id = requirement.id or f"req-{index}"
    logger.info("Extracted %s requirements for %s", len(requirements), document_type)
    return requirements


def analyze_rft(
    llm: LLMClient,
    rft_texts: list[str],
    project_name: str,
    instructions: str | None = None,
) -> list[DocumentSuggestion]:
    """Identify the deliverable documents an RFT asks for."""
    rft_text = _join_rft_texts(rft_texts)
    response = llm.generate_text(
        prompts.build_analyze_rft_prompt(rft_text, project_name, instructions),
        task_type="rft_analysis",
        system_message=prompts.TENDER_WRITER_SYSTEM,
    )
    parsed = parse_json_response(response)
    documents = parsed.get("documents") if isinstance(parsed, dict) else parsed
    if not isinstance(documents, list):
        raise UpstreamGenerationError("Model response did not contain a document list")

    suggestions = []
    for item in documents:
        if not isinstance(item, dict) or not str(item.get("document_type", "")).strip():
            continue
        suggestions.append(DocumentSuggestion(
            document_type=str(item["document_type"]).strip(),
            description=str(item.get("description") or ""),
            requirements=_model_requirements(item.get("requirements")),
        ))
    logger.info("RFT analysis for %s identified %s documents", project_name, len(suggestions))
    return suggestions


def generate_strategy(llm: LLMClient, work_package: WorkPackageInfo, bundle: ContextBundle) -> StrategyResult:
    """Bid analysis and win themes in one call, returned together."""
    response = llm.generate_text(
        prompts.build_strategy_prompt(bundle.project, work_package, bundle.organization_text, bundle.rft_text),
        task_type="strategy",
        system_message=prompts.TENDER_WRITER_SYSTEM,
    )
    parsed = parse_json_response(response)
    if not isinstance(parsed, dict) or not isinstance(parsed.get("bid_analysis"), dict):
        raise UpstreamGenerationError("Model response did not contain a bid analysis")

    result = StrategyResult(
        bid_analysis=score_bid_analysis(parsed["bid_analysis"]),
        win_themes=_clean_themes(parsed.get("win_themes")),
    )
    logger.info(
        "Strategy for work package %s: %s (%s/100), %s win themes",
        work_package.id,
        result.bid_analysis.recommendation,
        result.bid_analysis.total_score,
        len(result.win_themes),
    )
    return result


def generate_win_themes(llm: LLMClient, work_package: WorkPackageInfo, bundle: ContextBundle) -> list[str]:
    response = llm.generate_text(
        prompts.build_win_themes_prompt(bundle.project, work_package, bundle.organization_text, bundle.rft_text),
        task_type="win_themes",
        system_message=prompts.TENDER_WRITER_SYSTEM,
    )
    parsed = parse_json_response(response)
    if isinstance(parsed, dict):
        parsed = parsed.get("win_themes")
    return _clean_themes(parsed)


def generate_document_content(
    llm: LLMClient,
    work_package: WorkPackageInfo,
    bundle: ContextBundle,
    win_themes: list[str] | None,
    instructions: str | None = None,
) -> str:
    """
    Draft the full document in Markdown.

    Raises:
        PreconditionError: win themes have not been generated
    """
    if not win_themes:
        raise PreconditionError("Win themes must be generated first")

    content = llm.generate_text(
        prompts.build_content_prompt(
            bundle.project,
            work_package,
            win_themes,
            bundle.organization_text,
            bundle.rft_text,
            instructions,
        ),
        task_type="content_generation",
        system_message=prompts.TENDER_WRITER_SYSTEM,
    )
    content = content.strip()
    if not content:
        raise UpstreamGenerationError("Model returned an empty document")
    logger.info("Generated %s chars for work package %s", len(content), work_package.id)
    return content


def execute_editor_action(llm: LLMClient, action: EditorAction) -> str:
    """Run one editor action and return the modified text."""
    logger.info("Running editor action %s on %s chars", action.kind.value, len(action.selected_text))
    return llm.generate_text(
        action.build_prompt(),
        task_type="editor_action",
        system_message=prompts.TENDER_WRITER_SYSTEM,
    ).strip()


def _normalize_batch_results(parsed: Any, work_packages: list[WorkPackageInfo]) -> list[BatchItem]:
    """
    Validate a batch response against the requested packages.

    Raises:
        BatchSchemaError: missing, unexpected or duplicate entries, or an entry
            without criteria, win themes or content
    """
    if not isinstance(parsed, list) or not parsed:
        raise BatchSchemaError("Batch response missing or empty")

    requested = {work_package.id for work_package in work_packages}
    items: dict[str, BatchItem] = {}
    for entry in parsed:
        if not isinstance(entry, dict):
            raise BatchSchemaError("Batch response entry is not an object")
        work_package_id = str(entry.get("workPackageId") or "")
        if work_package_id not in requested:
            raise BatchSchemaError(f"Unexpected workPackageId {work_package_id}")
        if work_package_id in items:
            raise BatchSchemaError(f"Duplicate entry for workPackageId {work_package_id}")

        raw_analysis = entry.get("bidAnalysis")
        if not isinstance(raw_analysis, dict) or not isinstance(raw_analysis.get("criteria"), list) \
                or not raw_analysis["criteria"]:
            raise BatchSchemaError("Bid analysis criteria missing in batch response")
        if not isinstance(entry.get("winThemes"), list):
            raise BatchSchemaError("Win themes missing in batch response")
        content = entry.get("content")
        if not isinstance(content, str) or not content.strip():
            raise BatchSchemaError("Content missing in batch response")

        try:
            bid_analysis = score_bid_analysis(raw_analysis)
            win_themes = _clean_themes(entry["winThemes"])
        except UpstreamGenerationError as e:
            raise BatchSchemaError(e.message) from e
        items[work_package_id] = BatchItem(
            work_package_id=work_package_id,
            success=True,
            bid_analysis=bid_analysis,
            win_themes=win_themes,
            content=content.strip(),
        )

    if len(items) != len(requested):
        raise BatchSchemaError("Batch response missing one or more requested work packages")
    return [items[work_package.id] for work_package in work_packages]


def _run_batch_prompt(
    llm: LLMClient,
    work_packages: list[WorkPackageInfo],
    bundle: ContextBundle,
    instructions: str | None,
) -> list[BatchItem]:
    logger.info(
        "Generating %s documents in one batch (~%s tokens of context)",
        len(work_packages),
        bundle.token_estimate(),
    )
    response = llm.generate_text(
        prompts.build_batch_prompt(
            bundle.project, work_packages, bundle.organization_text, bundle.rft_text, instructions
        ),
        task_type="batch_generation",
        system_message=prompts.TENDER_WRITER_SYSTEM,
    )
    try:
        parsed = parse_json_response(response)
    except UpstreamGenerationError as e:
        raise BatchSchemaError(e.message) from e
    return _normalize_batch_results(parsed, work_packages)


def _run_sequential(
    llm: LLMClient,
    work_packages: list[WorkPackageInfo],
    bundle: ContextBundle,
    instructions: str | None,
) -> list[BatchItem]:
    """Strategy then content, one package at a time; failures stay per package."""
    logger.warning("Falling back to sequential generation for %s documents", len(work_packages))
    items = []
    for work_package in work_packages:
        try:
            strategy = generate_strategy(llm, work_package, bundle)
            content = generate_document_content(llm, work_package, bundle, strategy.win_themes, instructions)
        except TenderError as e:
            logger.error("Sequential generation failed for work package %s: %s", work_package.id, e.message)
            items.append(BatchItem(work_package_id=work_package.id, success=False, error=e.message))
            continue
        items.append(BatchItem(
            work_package_id=work_package.id,
            success=True,
            bid_analysis=strategy.bid_analysis,
            win_themes=strategy.win_themes,
            content=content,
        ))
    return items


def generate_batch(
    llm: LLMClient,
    work_packages: list[WorkPackageInfo],
    bundle: ContextBundle,
    instructions: str | None = None,
) -> BatchResult:
    """
    Strategy, win themes and content for several work packages sharing one context.

    One model call covers the whole batch. A response that does not match the
    requested packages falls back to per-package generation; rate limits and
    other upstream failures of the batch call propagate.
    """
    try:
        items = _run_batch_prompt(llm, work_packages, bundle, instructions)
    except BatchSchemaError as e:
        logger.warning("Batch response rejected: %s", e.message)
        items = _run_sequential(llm, work_packages, bundle, instructions)
        return BatchResult(execution_mode="fallback_sequential", items=items)
    logger.info("Generated %s documents via batch prompt", len(items))
    return BatchResult(execution_mode="batch_prompt", items=items)
