"""User API Key Router.

Handlers that touch the cipher are plain ``def`` (or offload to a thread) so
the key-derivation cost never blocks the event loop. Responses carry metadata
only; neither raw nor encrypted key material leaves the store.
"""
import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends

from promptvault.dependencies import (
    ProviderProbe,
    get_api_key_store,
    get_current_user_id,
    get_provider_probe,
)
from promptvault.domain.credentials.errors import AuthenticationError, FormatError
from promptvault.domain.credentials.models import (
    AiProvider,
    ApiKeyMetadata,
    ApiKeyStatus,
    UpsertApiKeyRequest,
)
from promptvault.domain.credentials.ports import ApiKeyStore
from promptvault.errors import raise_cipher_error, raise_promptvault_error

router = APIRouter()
logger = logging.getLogger(__name__)


def _parse_provider(provider: str) -> AiProvider:
    try:
        return AiProvider(provider)
    except ValueError:
        raise_promptvault_error(
            "VALIDATION_ERROR", 400, "Invalid provider",
            details={"allowed": [p.value for p in AiProvider]}
        )


def _public(metadata: dict) -> dict:
    return ApiKeyMetadata(**metadata).model_dump(mode="json")


@router.get("/user/api-keys")
def list_api_keys(
    user_id: str = Depends(get_current_user_id),
    store: ApiKeyStore = Depends(get_api_key_store),
):
    return {"success": True, "data": [_public(m) for m in store.list_api_keys(user_id)]}


@router.post("/user/api-keys/{provider}")
def upsert_api_key(
    provider: str,
    payload: dict = Body(...),
    user_id: str = Depends(get_current_user_id),
    store: ApiKeyStore = Depends(get_api_key_store),
):
    ai_provider = _parse_provider(provider)
    try:
        request = UpsertApiKeyRequest.model_validate(payload)
    except ValueError:
        raise_promptvault_error("VALIDATION_ERROR", 400, "API key cannot be empty")

    metadata = store.upsert_api_key(user_id, ai_provider, request.api_key)
    return {"success": True, "data": _public(metadata)}


@router.delete("/user/api-keys/{provider}")
def delete_api_key(
    provider: str,
    user_id: str = Depends(get_current_user_id),
    store: ApiKeyStore = Depends(get_api_key_store),
):
    ai_provider = _parse_provider(provider)
    if not store.delete_api_key(user_id, ai_provider):
        raise_promptvault_error("NOT_FOUND", 404, "API key not found")
    return {"success": True, "message": "API key deleted"}


@router.post("/user/api-keys/{provider}/test")
async def check_api_key_connection(
    provider: str,
    user_id: str = Depends(get_current_user_id),
    store: ApiKeyStore = Depends(get_api_key_store),
    probe: ProviderProbe = Depends(get_provider_probe),
):
    """Decrypt the stored key, probe the provider, and record the outcome."""
    ai_provider = _parse_provider(provider)

    try:
        api_key = await asyncio.to_thread(store.get_decrypted_key, user_id, ai_provider)
    except (FormatError, AuthenticationError) as e:
        logger.warning(f"Stored {ai_provider.value} key for user {user_id} is unreadable: {type(e).__name__}")
        await asyncio.to_thread(store.update_status, user_id, ai_provider, ApiKeyStatus.ERROR)
        raise_cipher_error(e)

    if api_key is None:
        raise_promptvault_error("NOT_FOUND", 404, "API key not found")

    is_valid = await probe(ai_provider, api_key)
    tested_at = datetime.now(timezone.utc)

    if not is_valid:
        await asyncio.to_thread(store.update_status, user_id, ai_provider, ApiKeyStatus.ERROR, tested_at)
        raise_promptvault_error("API_KEY_TEST_FAILED", 400, "API key test failed: Connection test failed")

    await asyncio.to_thread(store.update_status, user_id, ai_provider, ApiKeyStatus.ACTIVE, tested_at)
    return {
        "success": True,
        "data": {
            "provider": ai_provider.value,
            "status": ApiKeyStatus.ACTIVE.value,
            "message": "API key is valid",
        },
    }
