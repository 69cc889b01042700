"""AI Provider Client - authenticated connection probes."""
import logging
from typing import Dict, Optional, Tuple

import httpx

from promptvault.domain.credentials.models import AiProvider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
ANTHROPIC_VERSION = "2023-06-01"

# Cheapest authenticated request per provider
PROBE_ENDPOINTS: Dict[AiProvider, str] = {
    AiProvider.OPENAI: "https://api.openai.com/v1/models",
    AiProvider.GROK: "https://api.x.ai/v1/models",
    AiProvider.OPENROUTER: "https://openrouter.ai/api/v1/models",
    AiProvider.ANTHROPIC: "https://api.anthropic.com/v1/models",
    AiProvider.GEMINI: "https://generativelanguage.googleapis.com/v1beta/models",
}


def build_probe_request(provider: AiProvider, api_key: str) -> Tuple[str, Dict[str, str]]:
    """Return (url, headers) for a provider's connection probe.

    The key always travels in a header so it never appears in request URLs.
    """
    url = PROBE_ENDPOINTS[provider]

    if provider == AiProvider.ANTHROPIC:
        headers = {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION}
    elif provider == AiProvider.GEMINI:
        headers = {"x-goog-api-key": api_key}
    else:
        headers = {"Authorization": f"Bearer {api_key}"}

    return url, headers


async def probe_provider(
    provider: AiProvider,
    api_key: str,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """Check that ``api_key`` is accepted by ``provider``.

    Returns True on a 2xx response, False on any other status or a transport
    error. The key is only held for the duration of the call.
    """
    url, headers = build_probe_request(provider, api_key)

    try:
        if client is not None:
            response = await client.get(url, headers=headers, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as owned_client:
                response = await owned_client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.warning(f"Provider probe failed for {provider.value}: {type(e).__name__}")
        return False

    if response.is_success:
        return True

    logger.info(f"Provider probe for {provider.value} returned {response.status_code}")
    return False
