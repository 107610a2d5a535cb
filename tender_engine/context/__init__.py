from tender_engine.context.assembler import (
    ContextBundle,
    ContextSection,
    ContextSource,
    ContextValidation,
    assemble_project_context,
    ensure_within_budget,
    estimate_tokens,
    validate_context_size,
)

__all__ = [
    "ContextBundle",
    "ContextSection",
    "ContextSource",
    "ContextValidation",
    "assemble_project_context",
    "ensure_within_budget",
    "estimate_tokens",
    "validate_context_size",
]
