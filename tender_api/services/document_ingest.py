"""
Upload ingestion shared by organization and project documents.
"""
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional

from tender_api.services.storage import LocalFileStorage
from tender_engine.utils.document_reader import extract_text

logger = logging.getLogger(__name__)


@dataclass
class IngestedFile:
    file_path: str
    file_size: int
    content_text: Optional[str]
    content_extracted: bool


def safe_filename(filename: str) -> str:
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", filename).strip("._")
    return name or "document"


def ingest_upload(
    storage: LocalFileStorage,
    prefix: str,
    filename: str,
    content_type: Optional[str],
    data: bytes,
) -> IngestedFile:
    """
    Store the raw file, then try to extract its text.

    A storage failure propagates as StorageError; an extraction failure only
    leaves content_extracted False.
    """
    path = f"{prefix}/{uuid.uuid4().hex}_{safe_filename(filename)}"
    storage.save(path, data)

    text = extract_text(data, filename, content_type)
    if text is None:
        logger.warning("Text extraction failed or unsupported for %s", filename)

    return IngestedFile(
        file_path=path,
        file_size=len(data),
        content_text=text,
        content_extracted=text is not None,
    )
