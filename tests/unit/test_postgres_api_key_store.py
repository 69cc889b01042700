import unittest
from unittest.mock import MagicMock

from sqlalchemy.exc import IntegrityError

from promptvault.adapters.postgres.api_key_store import PostgresApiKeyStore
from promptvault.domain.credentials.cipher import CredentialCipher
from promptvault.domain.credentials.models import AiProvider

TEST_PASSPHRASE = "test-encryption-key-32-characters-long-for-testing"


class MockApiKey:
    def __init__(self, user_id, provider, encrypted_key, status="not_configured"):
        self.id = "0190a0b0-0000-7000-8000-000000000001"
        self.user_id = user_id
        self.provider = provider
        self.encrypted_key = encrypted_key
        self.status = status
        self.last_tested_at = None
        self.created_at = None
        self.updated_at = None


class TestPostgresApiKeyStore(unittest.TestCase):
    def setUp(self):
        self.db = MagicMock()
        self.cipher = CredentialCipher(TEST_PASSPHRASE)
        self.store = PostgresApiKeyStore(self.db, self.cipher)

    def test_upsert_encrypts_before_storing(self):
        # Mock DB query to return None (new key)
        self.db.query.return_value.filter.return_value.first.return_value = None

        self.store.upsert_api_key("user-1", AiProvider.OPENAI, "sk-proj-secret")

        args, _ = self.db.add.call_args
        record = args[0]

        self.assertEqual(record.user_id, "user-1")
        self.assertEqual(record.provider, "openai")
        self.assertEqual(record.status, "not_configured")
        self.assertNotIn("sk-proj-secret", record.encrypted_key)
        self.assertEqual(self.cipher.decrypt(record.encrypted_key), "sk-proj-secret")
        self.db.commit.assert_called_once()

    def test_get_api_key_decrypts(self):
        encrypted = self.cipher.encrypt("sk-ant-secret")
        self.db.query.return_value.filter.return_value.first.return_value = MockApiKey(
            "user-1", "anthropic", encrypted
        )

        record = self.store.get_api_key("user-1", AiProvider.ANTHROPIC)

        self.assertEqual(record["key"], "sk-ant-secret")
        self.assertEqual(record["provider"], "anthropic")

    def test_get_missing_key_returns_none(self):
        self.db.query.return_value.filter.return_value.first.return_value = None
        self.assertIsNone(self.store.get_api_key("user-1", AiProvider.GEMINI))
        self.assertIsNone(self.store.get_decrypted_key("user-1", AiProvider.GEMINI))


    def test_upsert_conflict_falls_back_to_update(self):
        stale = self.cipher.encrypt("sk-old")
        winner = MockApiKey("user-1", "openai", stale, status="active")
        # Missing on first lookup, present after the competing insert commits
        self.db.query.return_value.filter.return_value.first.side_effect = [None, winner]
        self.db.commit.side_effect = [
            IntegrityError("INSERT INTO api_keys", {}, Exception("uq_api_keys_user_provider")),
            None,
        ]

        metadata = self.store.upsert_api_key("user-1", AiProvider.OPENAI, "sk-new")

        self.db.rollback.assert_called_once()
        self.assertEqual(self.db.commit.call_count, 2)
        self.assertEqual(metadata["id"], winner.id)
        self.assertEqual(metadata["status"], "not_configured")
        self.assertEqual(self.cipher.decrypt(winner.encrypted_key), "sk-new")

    def test_update_conflict_is_not_retried(self):
        existing = MockApiKey("user-1", "openai", self.cipher.encrypt("sk-old"))
        self.db.query.return_value.filter.return_value.first.return_value = existing
        self.db.commit.side_effect = IntegrityError("UPDATE api_keys", {}, Exception("constraint"))

        with self.assertRaises(IntegrityError):
            self.store.upsert_api_key("user-1", AiProvider.OPENAI, "sk-new")
        self.db.rollback.assert_not_called()

if __name__ == "__main__":
    unittest.main()
