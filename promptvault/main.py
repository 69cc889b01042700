"""PromptVault Credential Service - Main Application."""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from promptvault.logging_hardening import setup_logging_redaction
from promptvault.settings import settings

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

from promptvault.adapters.postgres.session import init_db
from promptvault.api.api_keys import router as api_keys_router
from promptvault.domain.credentials.cipher import get_credential_cipher
from promptvault.domain.credentials.errors import CipherError, ConfigurationError
from promptvault.errors import cipher_error_response
from promptvault.routers import health

# Initialize logging redaction filters early
setup_logging_redaction()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_db()

    # A missing passphrase is reported, not fatal: health/ready stays red until fixed
    try:
        get_credential_cipher().ensure_configured()
    except ConfigurationError as e:
        logger.error(f"Encryption is not configured: {e}")

    yield
    # Shutdown
    logger.info("Shutdown complete.")


app = FastAPI(
    title="PromptVault Credential Service",
    description="Encrypted storage of user AI-provider API keys",
    version="0.1.0",
    lifespan=lifespan
)


@app.exception_handler(CipherError)
async def cipher_error_handler(request: Request, exc: CipherError):
    logger.error(f"{type(exc).__name__} while serving {request.url.path}: {exc}")
    status_code, detail = cipher_error_response(exc)
    return JSONResponse(status_code=status_code, content={"detail": detail})


# Mount routers
app.include_router(api_keys_router.router, prefix="/v1", tags=["API Keys"])
app.include_router(health.router, tags=["Health"])
