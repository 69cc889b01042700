"""Dependency Injection Module."""
import logging
from typing import Awaitable, Callable, Generator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from promptvault.adapters.memory_store.stores import MemoryApiKeyStore
from promptvault.adapters.postgres.api_key_store import PostgresApiKeyStore
from promptvault.adapters.postgres.session import SessionLocal
from promptvault.adapters.providers.client import probe_provider
from promptvault.domain.credentials.cipher import CredentialCipher
from promptvault.domain.credentials.cipher import get_credential_cipher as _build_cipher
from promptvault.domain.credentials.models import AiProvider
from promptvault.domain.credentials.ports import ApiKeyStore
from promptvault.errors import raise_promptvault_error

logger = logging.getLogger(__name__)

ProviderProbe = Callable[[AiProvider, str], Awaitable[bool]]


def get_db() -> Generator[Session, None, None]:
    """Dependency for a request-scoped database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_credential_cipher() -> CredentialCipher:
    """Fresh cipher per request; ENCRYPTION_KEY is resolved from the environment each time."""
    return _build_cipher()


_memory_api_key_store: Optional[MemoryApiKeyStore] = None


def get_api_key_store(
    db: Session = Depends(get_db),
    cipher: CredentialCipher = Depends(get_credential_cipher),
) -> ApiKeyStore:
    from promptvault.settings import settings

    if settings.api_key_store_backend == "memory":
        global _memory_api_key_store
        if _memory_api_key_store is None:
            logger.warning("Using process-local memory API key store; keys are lost on restart")
            _memory_api_key_store = MemoryApiKeyStore(cipher)
        # Records are shared process-wide; the cipher stays per request
        return _memory_api_key_store.bind(cipher)
    return PostgresApiKeyStore(db, cipher)


def get_provider_probe() -> ProviderProbe:
    from promptvault.settings import settings

    async def _probe(provider: AiProvider, api_key: str) -> bool:
        return await probe_provider(provider, api_key, timeout=settings.provider_test_timeout_seconds)

    return _probe


def get_current_user_id(
    request: Request,
    x_promptvault_user: Optional[str] = Header(None),
) -> str:
    """Authenticated user id, set on request.state by the auth middleware.

    In DEV_MODE only, the X-PromptVault-User header is accepted as a fallback.
    """
    from promptvault.settings import settings

    user_id = getattr(request.state, "user_id", None)
    if not user_id and settings.dev_mode:
        user_id = x_promptvault_user
    if not user_id:
        raise_promptvault_error("AUTH_REQUIRED", 401, "Authentication required")
    return user_id
