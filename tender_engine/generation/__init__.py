from tender_engine.generation.editor_actions import EditorActionType, parse_editor_action
from tender_engine.generation.generator import (
    analyze_rft,
    execute_editor_action,
    extract_requirements,
    generate_batch,
    generate_document_content,
    generate_strategy,
    generate_win_themes,
)

__all__ = [
    "EditorActionType",
    "analyze_rft",
    "execute_editor_action",
    "extract_requirements",
    "generate_batch",
    "generate_document_content",
    "generate_strategy",
    "generate_win_themes",
    "parse_editor_action",
]
