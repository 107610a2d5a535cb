"""
Signed download of exported documents.

The signature stands in for the caller identity, so links can be opened
directly by a browser.
"""

import logging
from pathlib import PurePosixPath

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from tender_api.dependencies import StorageDep

logger = logging.getLogger(__name__)
router = APIRouter()

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@router.get("/download")
def download_export(path: str, expires: int, signature: str, storage: StorageDep):
    if not storage.verify_signature(path, expires, signature):
        logger.warning("Rejected download of %s: invalid or expired signature", path)
        raise HTTPException(status_code=403, detail="Invalid or expired download link")
    if not storage.exists(path):
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(
        storage.resolve(path),
        filename=PurePosixPath(path).name,
        media_type=DOCX_MEDIA_TYPE,
    )
