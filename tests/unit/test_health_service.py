from unittest.mock import MagicMock

import pytest

from promptvault.domain.credentials.cipher import CredentialCipher
from promptvault.domain.credentials.errors import ConfigurationError
from promptvault.domain.credentials.health import CredentialHealthService
from promptvault.domain.credentials.models import AiProvider, ApiKeyStatus


def _record(cipher, record_id, status="active", encrypted_key=None):
    return {
        "id": record_id,
        "user_id": f"user-{record_id}",
        "provider": "openai",
        "status": status,
        "encrypted_key": encrypted_key or cipher.encrypt("sk-test"),
    }


def test_check_batch_marks_only_unreadable(cipher):
    store = MagicMock()
    store.get_keys_batch.return_value = [
        _record(cipher, "a"),
        _record(cipher, "b", encrypted_key="not-a-valid-format"),
        _record(cipher, "c", status="error", encrypted_key="not-a-valid-format"),
    ]
    service = CredentialHealthService(store, cipher)

    scanned, unreadable, last_id = service.check_batch(batch_size=10)

    assert (scanned, unreadable, last_id) == (3, 2, "c")
    # Already flagged records are not rewritten
    store.update_status.assert_called_once_with("user-b", AiProvider.OPENAI, ApiKeyStatus.ERROR)


def test_check_all_pages_through_store(cipher):
    store = MagicMock()
    store.get_keys_batch.side_effect = [
        [_record(cipher, "a"), _record(cipher, "b")],
        [_record(cipher, "c")],
    ]
    service = CredentialHealthService(store, cipher)

    assert service.check_all(batch_size=2) == (3, 0)
    assert store.get_keys_batch.call_args_list[1].args == (2, "b")


def test_check_all_refuses_without_passphrase():
    store = MagicMock()
    service = CredentialHealthService(store, CredentialCipher(None))

    with pytest.raises(ConfigurationError):
        service.check_all()
    store.update_status.assert_not_called()
