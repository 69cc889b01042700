"""Memory Store Implementations."""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from uuid6 import uuid7

from promptvault.domain.credentials.cipher import CredentialCipher
from promptvault.domain.credentials.models import AiProvider, ApiKeyStatus
from promptvault.domain.credentials.ports import ApiKeyStore

logger = logging.getLogger(__name__)

_METADATA_FIELDS = ("id", "provider", "status", "last_tested_at", "created_at", "updated_at")


class MemoryApiKeyStore(ApiKeyStore):
    """Process-local API key store for dev mode and tests.

    Records hold the encrypted string only, same as the database store.
    """

    def __init__(self, cipher: CredentialCipher):
        self._cipher = cipher
        self._records: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def bind(self, cipher: CredentialCipher) -> "MemoryApiKeyStore":
        """Return a view over the same records that uses ``cipher``."""
        store = MemoryApiKeyStore(cipher)
        store._records = self._records
        store._lock = self._lock
        return store

    @staticmethod
    def _metadata(record: Dict[str, Any]) -> Dict[str, Any]:
        return {k: record[k] for k in _METADATA_FIELDS}

    def list_api_keys(self, user_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            records = [r for (uid, _), r in self._records.items() if uid == user_id]
        return [self._metadata(r) for r in sorted(records, key=lambda r: r["provider"])]

    def get_api_key(self, user_id: str, provider: AiProvider) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._records.get((user_id, provider.value))
        if not record:
            return None
        key = self._cipher.decrypt(record["encrypted_key"])
        return {**self._metadata(record), "key": key}

    def upsert_api_key(self, user_id: str, provider: AiProvider, api_key: str) -> Dict[str, Any]:
        encrypted_key = self._cipher.encrypt(api_key)
        now = datetime.now(timezone.utc)

        with self._lock:
            record = self._records.get((user_id, provider.value))
            if record:
                record.update(
                    encrypted_key=encrypted_key,
                    status=ApiKeyStatus.NOT_CONFIGURED.value,
                    last_tested_at=None,
                    updated_at=now,
                )
            else:
                record = {
                    "id": str(uuid7()),
                    "user_id": user_id,
                    "provider": provider.value,
                    "encrypted_key": encrypted_key,
                    "status": ApiKeyStatus.NOT_CONFIGURED.value,
                    "last_tested_at": None,
                    "created_at": now,
                    "updated_at": now,
                }
                self._records[(user_id, provider.value)] = record
            return self._metadata(record)

    def delete_api_key(self, user_id: str, provider: AiProvider) -> bool:
        with self._lock:
            return self._records.pop((user_id, provider.value), None) is not None

    def update_status(
        self,
        user_id: str,
        provider: AiProvider,
        status: ApiKeyStatus,
        last_tested_at: Optional[datetime] = None,
    ) -> bool:
        with self._lock:
            record = self._records.get((user_id, provider.value))
            if not record:
                return False
            now = datetime.now(timezone.utc)
            record.update(status=status.value, last_tested_at=last_tested_at or now, updated_at=now)
            return True

    def get_encrypted_key(self, user_id: str, provider: AiProvider) -> Optional[str]:
        with self._lock:
            record = self._records.get((user_id, provider.value))
        return record["encrypted_key"] if record else None

    def is_key_readable(self, user_id: str, provider: AiProvider) -> Optional[bool]:
        encrypted_key = self.get_encrypted_key(user_id, provider)
        if encrypted_key is None:
            return None
        return self._cipher.validate(encrypted_key)

    def get_keys_batch(self, batch_size: int, cursor: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            records = sorted(self._records.values(), key=lambda r: r["id"])
        if cursor:
            records = [r for r in records if r["id"] > cursor]
        return [
            {k: r[k] for k in ("id", "user_id", "provider", "status", "encrypted_key")}
            for r in records[:batch_size]
        ]
