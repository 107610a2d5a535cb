from tender_engine.export.bundle import (
    ExportDocument,
    build_archive_filename,
    build_export_archive,
    build_export_filename,
    collect_export_documents,
)
from tender_engine.export.docx_renderer import render_markdown_to_docx

__all__ = [
    "ExportDocument",
    "build_archive_filename",
    "build_export_archive",
    "build_export_filename",
    "collect_export_documents",
    "render_markdown_to_docx",
]
