"""
Work package state machine and workflow stage gating.

Status only moves forward: pending -> in_progress -> completed. Completed
stages are never stored; completed_steps() derives them from which content
fields are populated, and every gating decision goes through it.
"""
from enum import Enum
from typing import Any, Iterable, Optional


class WorkPackageStatus(str, Enum):
    """Work package status enumeration."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class WorkflowEvent(str, Enum):
    GENERATION_STARTED = "generation_started"
    EXPORT_SUCCEEDED = "export_succeeded"


class Stage(str, Enum):
    """Workflow stages in the order they are worked."""

    REQUIREMENTS = "requirements"
    STRATEGY = "strategy"
    GENERATE = "generate"
    EDIT = "edit"
    EXPORT = "export"


STAGE_ORDER = list(Stage)

_RANK = {
    WorkPackageStatus.PENDING: 0,
    WorkPackageStatus.IN_PROGRESS: 1,
    WorkPackageStatus.COMPLETED: 2,
}

_EVENT_TARGET = {
    WorkflowEvent.GENERATION_STARTED: WorkPackageStatus.IN_PROGRESS,
    WorkflowEvent.EXPORT_SUCCEEDED: WorkPackageStatus.COMPLETED,
}


def apply_event(current: WorkPackageStatus | str, event: WorkflowEvent) -> WorkPackageStatus:
    """
    Return the status after an event.

    Starting generation on a completed package leaves it completed; the
    export event is the only way to reach completed.
    """
    current = WorkPackageStatus(current)
    target = _EVENT_TARGET[event]
    return target if _RANK[target] > _RANK[current] else current


def _field(content: Any, name: str) -> Any:
    if content is None:
        return None
    if isinstance(content, dict):
        return content.get(name)
    return getattr(content, name, None)


def completed_steps(requirements: Optional[Iterable[Any]], content: Any) -> set[Stage]:
    """
    Stages whose output is present.

    Args:
        requirements: the work package's requirement list
        content: the WorkPackageContent row or an equivalent mapping, or None
    """
    steps: set[Stage] = set()
    if requirements and list(requirements):
        steps.add(Stage.REQUIREMENTS)
    if _field(content, "bid_analysis") and _field(content, "win_themes"):
        steps.add(Stage.STRATEGY)
    draft = _field(content, "content")
    if draft and draft.strip():
        steps.add(Stage.GENERATE)
        steps.add(Stage.EDIT)
    if _field(content, "exported_file_path"):
        steps.add(Stage.EXPORT)
    return steps


def next_stage(completed: set[Stage]) -> Optional[Stage]:
    """First stage, in workflow order, not yet completed."""
    for stage in STAGE_ORDER:
        if stage not in completed:
            return stage
    return None


def is_stage_accessible(stage: Stage, completed: set[Stage], current: Optional[Stage] = None) -> bool:
    if stage is Stage.REQUIREMENTS:
        return True
    return stage in completed or stage == current


def accessible_stages(completed: set[Stage], current: Optional[Stage] = None) -> list[Stage]:
    current = current or next_stage(completed)
    return [stage for stage in STAGE_ORDER if is_stage_accessible(stage, completed, current)]
