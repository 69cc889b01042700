import re

import pytest
from click.testing import CliRunner

from promptvault.adapters.postgres import session as session_module
from promptvault.adapters.postgres.api_key_store import PostgresApiKeyStore
from promptvault.adapters.postgres.models import ApiKey
from promptvault.cli import cli
from promptvault.domain.credentials.cipher import CredentialCipher
from promptvault.domain.credentials.models import AiProvider


@pytest.fixture
def runner():
    return CliRunner()


def test_generate_key(runner):
    result = runner.invoke(cli, ["generate-key"])
    assert result.exit_code == 0
    assert re.fullmatch(r"[0-9a-f]{64}", result.output.strip())


def test_generate_key_custom_bytes(runner):
    result = runner.invoke(cli, ["generate-key", "--bytes", "16"])
    assert result.exit_code == 0
    assert len(result.output.strip()) == 32

    result = runner.invoke(cli, ["generate-key", "--bytes", "0"])
    assert result.exit_code != 0


def test_encrypt_then_validate(runner, cipher):
    result = runner.invoke(cli, ["encrypt"], input="sk-proj-ABC123!@#\n")
    assert result.exit_code == 0
    encoded = result.output.strip().splitlines()[-1]
    assert cipher.decrypt(encoded) == "sk-proj-ABC123!@#"

    result = runner.invoke(cli, ["validate", encoded])
    assert result.exit_code == 0
    assert result.output.strip() == "valid"


def test_encrypt_prompts_for_value(runner, cipher):
    result = runner.invoke(cli, ["encrypt"], input="prompted-secret\n")
    assert result.exit_code == 0
    encoded = result.output.strip().splitlines()[-1]
    assert cipher.decrypt(encoded) == "prompted-secret"
    assert "prompted-secret" not in result.output


def test_encrypt_rejects_secret_on_command_line(runner):
    result = runner.invoke(cli, ["encrypt", "--value", "sk-proj-ABC123!@#"])
    assert result.exit_code == 2
    assert "sk-proj-ABC123!@#" not in result.output


def test_encrypt_without_passphrase(runner, monkeypatch):
    monkeypatch.delenv("ENCRYPTION_KEY")
    result = runner.invoke(cli, ["encrypt"], input="x\n")
    assert result.exit_code == 2
    assert "ENCRYPTION_KEY" in result.output


def test_validate_rejects_garbage(runner):
    result = runner.invoke(cli, ["validate", "invalid-format"])
    assert result.exit_code == 1
    assert result.output.strip() == "invalid"


def test_keys_check(runner, monkeypatch, session_factory, db_session, cipher):
    PostgresApiKeyStore(db_session, cipher).upsert_api_key("user-1", AiProvider.OPENAI, "sk-a")
    rotated = CredentialCipher("rotated-encryption-key-32-characters-long-xyz")
    PostgresApiKeyStore(db_session, rotated).upsert_api_key("user-2", AiProvider.GEMINI, "AIza-b")
    monkeypatch.setattr(session_module, "SessionLocal", session_factory)

    result = runner.invoke(cli, ["keys", "check", "--batch-size", "1"])

    assert result.exit_code == 0
    assert "Scanned 2 keys, 1 unreadable" in result.output
    db_session.expire_all()
    statuses = {r.user_id: r.status for r in db_session.query(ApiKey).all()}
    assert statuses == {"user-1": "not_configured", "user-2": "error"}


def test_keys_check_without_passphrase(runner, monkeypatch, session_factory):
    monkeypatch.delenv("ENCRYPTION_KEY")
    monkeypatch.setattr(session_module, "SessionLocal", session_factory)

    result = runner.invoke(cli, ["keys", "check"])
    assert result.exit_code == 2
