"""PostgresApiKeyStore - Database-backed API key storage with at-rest encryption."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from uuid6 import uuid7

from promptvault.adapters.postgres.models import ApiKey
from promptvault.domain.credentials.cipher import CredentialCipher
from promptvault.domain.credentials.models import AiProvider, ApiKeyStatus
from promptvault.domain.credentials.ports import ApiKeyStore

logger = logging.getLogger(__name__)


def _metadata(record: ApiKey) -> Dict[str, Any]:
    return {
        "id": record.id,
        "provider": record.provider,
        "status": record.status,
        "last_tested_at": record.last_tested_at,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }


class PostgresApiKeyStore(ApiKeyStore):
    """SQLAlchemy-backed store. Works against any SQLAlchemy URL."""

    def __init__(self, db: Session, cipher: CredentialCipher):
        """Initialize store.

        Args:
            db: SQLAlchemy database session
            cipher: Credential cipher used for every read and write of key material
        """
        self._db = db
        self._cipher = cipher

    def _find(self, user_id: str, provider: AiProvider) -> Optional[ApiKey]:
        return self._db.query(ApiKey).filter(
            ApiKey.user_id == user_id,
            ApiKey.provider == provider.value,
        ).first()

    def list_api_keys(self, user_id: str) -> List[Dict[str, Any]]:
        records = self._db.query(ApiKey).filter(
            ApiKey.user_id == user_id
        ).order_by(ApiKey.provider).all()
        return [_metadata(r) for r in records]

    def get_api_key(self, user_id: str, provider: AiProvider) -> Optional[Dict[str, Any]]:
        record = self._find(user_id, provider)
        if not record:
            return None

        # Cipher errors propagate; the caller decides how to surface them
        key = self._cipher.decrypt(record.encrypted_key)
        return {**_metadata(record), "key": key}

    def upsert_api_key(self, user_id: str, provider: AiProvider, api_key: str) -> Dict[str, Any]:
        # Encrypt before touching the session so a ConfigurationError leaves no partial state
        encrypted_key = self._cipher.encrypt(api_key)

        record = self._find(user_id, provider)
        if record:
            self._replace_key(record, encrypted_key)
            action = "update"
        else:
            record = ApiKey(
                id=str(uuid7()),
                user_id=user_id,
                provider=provider.value,
                encrypted_key=encrypted_key,
                status=ApiKeyStatus.NOT_CONFIGURED.value,
                created_at=datetime.now(timezone.utc),
            )
            self._db.add(record)
            action = "create"

        try:
            self._db.commit()
        except IntegrityError:
            if action != "create":
                raise
            # A concurrent request inserted the same (user, provider) first
            self._db.rollback()
            record = self._find(user_id, provider)
            if record is None:
                raise
            self._replace_key(record, encrypted_key)
            self._db.commit()
            action = "update after conflict"

        self._db.refresh(record)
        logger.info(f"API key {action}: user={user_id} provider={provider.value}")
        return _metadata(record)

    @staticmethod
    def _replace_key(record: ApiKey, encrypted_key: str) -> None:
        record.encrypted_key = encrypted_key
        record.status = ApiKeyStatus.NOT_CONFIGURED.value
        record.last_tested_at = None

    def delete_api_key(self, user_id: str, provider: AiProvider) -> bool:
        record = self._find(user_id, provider)
        if not record:
            return False

        self._db.delete(record)
        self._db.commit()
        logger.info(f"API key delete: user={user_id} provider={provider.value}")
        return True

    def update_status(
        self,
        user_id: str,
        provider: AiProvider,
        status: ApiKeyStatus,
        last_tested_at: Optional[datetime] = None,
    ) -> bool:
        record = self._find(user_id, provider)
        if not record:
            return False

        record.status = status.value
        record.last_tested_at = last_tested_at or datetime.now(timezone.utc)
        self._db.commit()
        return True

    def get_encrypted_key(self, user_id: str, provider: AiProvider) -> Optional[str]:
        record = self._find(user_id, provider)
        return record.encrypted_key if record else None

    def is_key_readable(self, user_id: str, provider: AiProvider) -> Optional[bool]:
        encrypted_key = self.get_encrypted_key(user_id, provider)
        if encrypted_key is None:
            return None
        return self._cipher.validate(encrypted_key)

    def get_keys_batch(self, batch_size: int, cursor: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self._db.query(ApiKey).order_by(ApiKey.id)
        if cursor:
            query = query.filter(ApiKey.id > cursor)

        records = query.limit(batch_size).all()
        return [
            {
                "id": r.id,
                "user_id": r.user_id,
                "provider": r.provider,
                "status": r.status,
                "encrypted_key": r.encrypted_key,
            }
            for r in records
        ]
