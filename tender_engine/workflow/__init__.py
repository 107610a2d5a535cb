from tender_engine.workflow.state_machine import (
    STAGE_ORDER,
    Stage,
    WorkflowEvent,
    WorkPackageStatus,
    accessible_stages,
    apply_event,
    completed_steps,
    is_stage_accessible,
    next_stage,
)

__all__ = [
    "STAGE_ORDER",
    "Stage",
    "WorkflowEvent",
    "WorkPackageStatus",
    "accessible_stages",
    "apply_event",
    "completed_steps",
    "is_stage_accessible",
    "next_stage",
]
