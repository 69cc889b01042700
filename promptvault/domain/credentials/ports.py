"""Credential Domain Ports (Interfaces)."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from .models import AiProvider, ApiKeyStatus


class ApiKeyStore(ABC):
    """Abstract Port for per-user provider API key persistence.

    Implementations encrypt with the credential cipher before writing and
    only ever persist the encrypted string.
    """

    @abstractmethod
    def list_api_keys(self, user_id: str) -> List[Dict[str, Any]]:
        """List key metadata for a user, ordered by provider (no key values)."""
        ...

    @abstractmethod
    def get_api_key(self, user_id: str, provider: AiProvider) -> Optional[Dict[str, Any]]:
        """Return metadata plus the decrypted ``key``, or None if absent."""
        ...

    @abstractmethod
    def upsert_api_key(self, user_id: str, provider: AiProvider, api_key: str) -> Dict[str, Any]:
        """Encrypt and store a key, resetting its status. Returns metadata."""
        ...

    @abstractmethod
    def delete_api_key(self, user_id: str, provider: AiProvider) -> bool:
        """Delete a key. Returns False if it did not exist."""
        ...

    @abstractmethod
    def update_status(
        self,
        user_id: str,
        provider: AiProvider,
        status: ApiKeyStatus,
        last_tested_at: Optional[datetime] = None,
    ) -> bool:
        """Set key status; ``last_tested_at`` defaults to now."""
        ...

    @abstractmethod
    def get_encrypted_key(self, user_id: str, provider: AiProvider) -> Optional[str]:
        """Return the stored encrypted string (for validation only)."""
        ...

    @abstractmethod
    def get_keys_batch(self, batch_size: int, cursor: Optional[str] = None) -> List[Dict[str, Any]]:
        """Fetch a batch of records ordered by id, starting after ``cursor``."""
        ...

    def get_decrypted_key(self, user_id: str, provider: AiProvider) -> Optional[str]:
        """Decrypted key for an outbound provider call. Never persist or log it."""
        record = self.get_api_key(user_id, provider)
        return record["key"] if record else None

    def has_active_key(self, user_id: str, provider: AiProvider) -> bool:
        for record in self.list_api_keys(user_id):
            if record["provider"] == provider.value:
                return record["status"] == ApiKeyStatus.ACTIVE.value
        return False

    @abstractmethod
    def is_key_readable(self, user_id: str, provider: AiProvider) -> Optional[bool]:
        """Whether the stored key decrypts under the current passphrase.

        Returns None if no key is stored.
        """
        ...
