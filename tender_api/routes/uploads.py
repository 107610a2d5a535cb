"""
Upload validation shared by the document routes.
"""
from pathlib import Path

from fastapi import HTTPException, UploadFile

from tender_api.core.config import settings
from tender_engine.errors import ValidationError

# Allowed file extensions
ALLOWED_EXTENSIONS = {".pdf", ".docx", ".txt", ".md"}


async def read_upload(file: UploadFile) -> bytes:
    """Read an uploaded file after checking its name, type and size."""
    if not file.filename:
        raise ValidationError("No filename provided")

    suffix = Path(file.filename).suffix.lower()
    if suffix not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=415,
            detail=f"File type not allowed. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    data = await file.read()
    if not data:
        raise ValidationError("Uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    return data
