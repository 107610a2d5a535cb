"""
Shared FastAPI dependencies.

Every route receives a RequestContext carrying the verified caller and the
service handles, instead of recovering identity and sessions per handler.
"""
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from tender_api.core.config import settings
from tender_api.core.database import get_db
from tender_api.services.request_context import RequestContext
from tender_api.services.storage import LocalFileStorage
from tender_engine.config.llm_config import LLMClient, create_llm_client
from tender_engine.errors import AuthError

# Lazy initialization to avoid startup failures without an API key
_llm_client: LLMClient | None = None
_storage: LocalFileStorage | None = None


def get_llm_client() -> LLMClient:
    """Get or create the LLM client."""
    global _llm_client
    if _llm_client is None:
        _llm_client = create_llm_client()
    return _llm_client


def get_storage() -> LocalFileStorage:
    """Get or create the file storage."""
    global _storage
    if _storage is None:
        _storage = LocalFileStorage(
            settings.STORAGE_DIR,
            settings.SECRET_KEY,
            download_path=f"{settings.API_PREFIX}/exports/download",
        )
    return _storage


def get_current_user(request: Request) -> str:
    """
    Caller identity forwarded by the upstream gateway.

    Raises:
        AuthError: header missing or blank
    """
    user_id = request.headers.get(settings.AUTH_USER_HEADER, "").strip()
    if not user_id:
        raise AuthError()
    return user_id


def get_request_context(
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
    storage: LocalFileStorage = Depends(get_storage),
) -> RequestContext:
    return RequestContext(user_id=user_id, db=db, llm=llm, storage=storage)


# Type aliases for cleaner route signatures
ContextDep = Annotated[RequestContext, Depends(get_request_context)]
StorageDep = Annotated[LocalFileStorage, Depends(get_storage)]
