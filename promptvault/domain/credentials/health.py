"""Credential Health Service.

Scans stored API keys and flags the ones that no longer decrypt under the
configured passphrase. After a passphrase change every stored key fails;
affected users must re-enter their keys. No migration is attempted.
"""
import logging
from typing import Optional, Tuple

from promptvault.domain.credentials.cipher import CredentialCipher
from promptvault.domain.credentials.models import AiProvider, ApiKeyStatus
from promptvault.domain.credentials.ports import ApiKeyStore

logger = logging.getLogger(__name__)


class CredentialHealthService:
    """Batch validation of stored encrypted keys."""

    def __init__(self, store: ApiKeyStore, cipher: CredentialCipher):
        self.store = store
        self.cipher = cipher

    def check_batch(self, batch_size: int = 100, cursor: Optional[str] = None) -> Tuple[int, int, Optional[str]]:
        """
        Validates a batch of stored keys, marking unreadable ones as ``error``.

        Args:
            batch_size: Max records to process in this batch.
            cursor: The id of the last record processed in the previous batch.

        Returns:
            A tuple of (scanned_count, unreadable_count, last_id).
        """
        records = self.store.get_keys_batch(batch_size, cursor)
        if not records:
            return 0, 0, None

        unreadable = 0
        last_id = None
        for r in records:
            last_id = r["id"]
            if self.cipher.validate(r["encrypted_key"]):
                continue

            unreadable += 1
            if r["status"] != ApiKeyStatus.ERROR.value:
                self.store.update_status(r["user_id"], AiProvider(r["provider"]), ApiKeyStatus.ERROR)
            logger.warning(f"Stored API key {r['id']} ({r['provider']}) cannot be decrypted")

        return len(records), unreadable, last_id

    def check_all(self, batch_size: int = 100) -> Tuple[int, int]:
        """Scan every stored key. Returns (scanned, unreadable) totals."""
        # Fail fast: with no passphrase every record would be marked unreadable
        self.cipher.ensure_configured()

        scanned_total = 0
        unreadable_total = 0
        cursor = None
        while True:
            scanned, unreadable, cursor = self.check_batch(batch_size=batch_size, cursor=cursor)
            scanned_total += scanned
            unreadable_total += unreadable
            if scanned < batch_size:
                break

        logger.info(f"Credential health scan complete: scanned={scanned_total} unreadable={unreadable_total}")
        return scanned_total, unreadable_total
