from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
import logging

from promptvault.dependencies import get_credential_cipher, get_db
from promptvault.domain.credentials.cipher import CredentialCipher
from promptvault.domain.credentials.errors import ConfigurationError
from promptvault.errors import raise_promptvault_error

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health/live")
def liveness():
    """Liveness probe: Service is running."""
    return {"status": "ok", "checks": {"api": "ok"}}


@router.get("/health/ready")
def readiness(
    db: Session = Depends(get_db),
    cipher: CredentialCipher = Depends(get_credential_cipher),
):
    """Readiness probe: database reachable and encryption configured."""
    health = {"status": "ok", "checks": {}}

    # 1. Check DB
    try:
        db.execute(text("SELECT 1"))
        health["checks"]["database"] = "ok"
    except Exception as e:
        logger.error(f"Health check failed (database): {e}")
        health["checks"]["database"] = "failed"
        health["status"] = "failed"

    # 2. Check encryption passphrase
    try:
        cipher.ensure_configured()
        health["checks"]["encryption"] = "ok"
    except ConfigurationError as e:
        logger.error(f"Health check failed (encryption): {e}")
        health["checks"]["encryption"] = "failed"
        health["status"] = "failed"

    if health["status"] == "failed":
        raise_promptvault_error("NOT_READY", 503, "Service not ready", details=health)

    return health
