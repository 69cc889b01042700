"""CLI for PromptVault credential operations."""
import sys

import click

from promptvault.domain.credentials.cipher import generate_key, get_credential_cipher
from promptvault.domain.credentials.errors import CipherError


@click.group()
def cli():
    """PromptVault credential CLI."""
    pass


@cli.command("generate-key")
@click.option("--bytes", "length_bytes", default=32, show_default=True, type=click.IntRange(min=1),
              help="Random bytes to generate (printed as hex)")
def generate_key_command(length_bytes: int):
    """Generate a new ENCRYPTION_KEY value."""
    click.echo(generate_key(length_bytes))


@cli.command("encrypt")
def encrypt_command():
    """Encrypt a secret with the configured ENCRYPTION_KEY.

    The secret is read from a hidden prompt (or piped stdin), never from argv.
    """
    value = click.prompt("Value", hide_input=True)
    try:
        click.echo(get_credential_cipher().encrypt(value))
    except CipherError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)


@cli.command("validate")
@click.argument("encoded")
def validate_command(encoded: str):
    """Check that an encrypted value decrypts under ENCRYPTION_KEY."""
    if get_credential_cipher().validate(encoded):
        click.echo("valid")
    else:
        click.echo("invalid")
        sys.exit(1)


@cli.group()
def keys():
    """Manage stored user API keys."""
    pass


@keys.command("check")
@click.option("--batch-size", default=100, show_default=True, type=click.IntRange(min=1))
def check_keys(batch_size: int):
    """Mark stored API keys that no longer decrypt as 'error'."""
    from promptvault.adapters.postgres.api_key_store import PostgresApiKeyStore
    from promptvault.adapters.postgres.session import SessionLocal
    from promptvault.domain.credentials.health import CredentialHealthService

    cipher = get_credential_cipher()
    db = SessionLocal()
    try:
        service = CredentialHealthService(PostgresApiKeyStore(db, cipher), cipher)
        scanned, unreadable = service.check_all(batch_size=batch_size)
    except CipherError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)
    finally:
        db.close()

    click.echo(f"✓ Scanned {scanned} keys, {unreadable} unreadable")
    if unreadable:
        click.echo("Affected users must re-enter their API keys.")


if __name__ == "__main__":
    cli()
