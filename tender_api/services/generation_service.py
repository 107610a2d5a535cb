"""
Runs the generation stages for work packages and persists their output.

Budget-sensitive stages (strategy, win themes, content, batches) validate
the assembled context before any model call or state change.
"""
import logging
from typing import Optional

from tender_api.models.database import ProjectStatus, WorkPackage
from tender_api.services.request_context import RequestContext
from tender_engine.context import ContextBundle, assemble_project_context, ensure_within_budget
from tender_engine.config.settings import settings as engine_settings
from tender_engine.errors import (
    ContextTooLargeError,
    NotFoundError,
    PreconditionError,
    StorageError,
    ValidationError,
)
from tender_engine.generation import generator
from tender_engine.generation.editor_actions import EditorActionType, parse_editor_action
from tender_engine.models import BatchResult, DocumentSuggestion, Requirement, StrategyResult
from tender_engine.workflow import WorkflowEvent

logger = logging.getLogger(__name__)


class GenerationService:
    """Service for generation stage operations."""

    def __init__(self, ctx: RequestContext):
        self.ctx = ctx

    def _validated_bundle(self, work_package: WorkPackage) -> ContextBundle:
        bundle = assemble_project_context(self.ctx.context_source, work_package.project_id)
        validation = ensure_within_budget(bundle)
        if validation.warning:
            logger.warning("Work package %s: %s", work_package.id, validation.warning)
        return bundle

    def _rft_texts(self, project_id: str) -> list[str]:
        # Primary RFT first
        documents = self.ctx.projects.list_documents(project_id)
        return [d.content_text for d in documents if d.content_extracted and d.content_text]

    def extract_requirements(self, work_package_id: str) -> list[Requirement]:
        work_package = self.ctx.work_packages.get_or_404(work_package_id)
        requirements = generator.extract_requirements(
            self.ctx.llm, self._rft_texts(work_package.project_id), work_package.document_type
        )
        self.ctx.work_packages.save_requirements(work_package, requirements)
        return requirements

    def generate_strategy(self, work_package_id: str) -> StrategyResult:
        work_package = self.ctx.work_packages.get_or_404(work_package_id)
        bundle = self._validated_bundle(work_package)
        result = generator.generate_strategy(
            self.ctx.llm, self.ctx.work_packages.to_info(work_package), bundle
        )
        self.ctx.work_packages.save_combined_strategy(
            work_package, result.bid_analysis.to_dict(), result.win_themes
        )
        return result

    def generate_win_themes(self, work_package_id: str) -> list[str]:
        work_package = self.ctx.work_packages.get_or_404(work_package_id)
        bundle = self._validated_bundle(work_package)
        themes = generator.generate_win_themes(
            self.ctx.llm, self.ctx.work_packages.to_info(work_package), bundle
        )
        self.ctx.work_packages.save_win_themes(work_package, themes)
        return themes

    def generate_content(self, work_package_id: str, instructions: Optional[str] = None) -> str:
        """
        Draft the document.

        The win theme check and the budget check both run before the status
        moves to in_progress, so a rejected request leaves the package as it was.
        """
        work_package = self.ctx.work_packages.get_or_404(work_package_id)
        content = self.ctx.work_packages.get_content(work_package.id)
        win_themes = content.win_themes if content else None
        if not win_themes:
            raise PreconditionError("Win themes must be generated first")

        bundle = self._validated_bundle(work_package)
        self.ctx.work_packages.record_event(work_package, WorkflowEvent.GENERATION_STARTED)

        text = generator.generate_document_content(
            self.ctx.llm,
            self.ctx.work_packages.to_info(work_package),
            bundle,
            win_themes,
            instructions,
        )
        self.ctx.work_packages.save_content(work_package, text)
        return text

    def editor_action(
        self,
        work_package_id: str,
        action: str,
        selected_text: str,
        full_document: str = "",
        custom_instruction: Optional[str] = None,
        tone: Optional[str] = None,
    ) -> str:
        work_package = self.ctx.work_packages.get_or_404(work_package_id)

        organization_text = ""
        if action in (EditorActionType.EXPAND.value, EditorActionType.ADD_EVIDENCE.value):
            bundle = assemble_project_context(self.ctx.context_source, work_package.project_id)
            organization_text = bundle.organization_text

        editor_action = parse_editor_action(
            action,
            selected_text,
            full_document=full_document,
            organization_text=organization_text,
            requirements=self.ctx.work_packages.to_info(work_package).requirements,
            custom_instruction=custom_instruction,
            tone=tone,
        )
        return generator.execute_editor_action(self.ctx.llm, editor_action)

    def analyze_project(self, project_id: str, instructions: Optional[str] = None) -> list[WorkPackage]:
        """
        Analyse the project's RFT and create one work package per deliverable.

        The project is in analysis while the model runs and returns to its
        previous status if analysis fails.
        """
        project = self.ctx.projects.get_or_404(project_id)
        rft_texts = self._rft_texts(project_id)
        previous_status = project.status
        self.ctx.projects.set_status(project, ProjectStatus.ANALYSIS)

        try:
            suggestions: list[DocumentSuggestion] = generator.analyze_rft(
                self.ctx.llm, rft_texts, project.name, instructions or project.instructions
            )
        except Exception:
            self.ctx.projects.set_status(project, previous_status)
            raise

        created = [
            self.ctx.work_packages.create(
                project_id,
                suggestion.document_type,
                description=suggestion.description,
                requirements=suggestion.requirements,
            )
            for suggestion in suggestions
        ]
        self.ctx.projects.set_status(project, ProjectStatus.IN_PROGRESS)
        logger.info("Analysis of project %s created %s work packages", project_id, len(created))
        return created

    def generate_batch(
        self,
        project_id: str,
        work_package_ids: list[str],
        instructions: Optional[str] = None,
    ) -> tuple[BatchResult, list[dict]]:
        """
        Generate strategy and content for up to three work packages at once.

        The shared context is validated once against the budget and again with
        headroom for each package's share of the prompt. Each successful item is
        saved in its own commit; a failed save is reported, not raised.

        Returns:
            The engine result and one {work_package_id, success, error} per package
        """
        limit = engine_settings.context.batch_max_packages
        if not work_package_ids:
            raise ValidationError("work_package_ids must not be empty")
        if len(work_package_ids) > limit:
            raise ValidationError(f"Batch size too large. Maximum {limit} work packages per batch.")

        self.ctx.projects.get_or_404(project_id)
        work_packages = []
        for work_package_id in work_package_ids:
            work_package = self.ctx.work_packages.get_or_404(work_package_id)
            if work_package.project_id != project_id:
                raise NotFoundError("Work package", work_package_id)
            work_packages.append(work_package)

        bundle = assemble_project_context(self.ctx.context_source, project_id)
        ensure_within_budget(bundle)
        batch_tokens = (
            bundle.token_estimate()
            + len(work_packages) * engine_settings.context.batch_tokens_per_package
        )
        if batch_tokens > engine_settings.context.batch_token_limit:
            raise ContextTooLargeError(
                batch_tokens,
                "Batch would exceed token limit. Reduce the batch size or the organization documents.",
            )

        by_id = {work_package.id: work_package for work_package in work_packages}
        result = generator.generate_batch(
            self.ctx.llm,
            [self.ctx.work_packages.to_info(work_package) for work_package in work_packages],
            bundle,
            instructions,
        )

        saved = []
        for item in result.items:
            if not item.success:
                saved.append({"work_package_id": item.work_package_id, "success": False, "error": item.error})
                continue
            try:
                self.ctx.work_packages.save_combined_generation(
                    by_id[item.work_package_id],
                    item.bid_analysis.to_dict(),
                    item.win_themes,
                    item.content,
                )
            except StorageError as e:
                saved.append({"work_package_id": item.work_package_id, "success": False, "error": e.message})
                continue
            saved.append({"work_package_id": item.work_package_id, "success": True, "error": None})

        logger.info(
            "Batch for project %s (%s): %s of %s saved",
            project_id,
            result.execution_mode,
            sum(1 for entry in saved if entry["success"]),
            len(saved),
        )
        return result, saved
