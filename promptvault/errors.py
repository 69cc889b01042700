from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException

from promptvault.domain.credentials.errors import (
    AuthenticationError,
    CipherError,
    ConfigurationError,
    FormatError,
)

_UNREADABLE = ("API_KEY_UNREADABLE", 409, "Stored API key can no longer be decrypted; please re-enter it")

# (code, status, message) per cipher failure kind
CIPHER_ERROR_RESPONSES: Dict[type, Tuple[str, int, str]] = {
    ConfigurationError: ("ENCRYPTION_NOT_CONFIGURED", 500, "Server encryption is not configured"),
    FormatError: _UNREADABLE,
    AuthenticationError: _UNREADABLE,
}


def _error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    error_body: Dict[str, Any] = {
        "code": code,
        "message": message
    }
    if details:
        error_body["details"] = details
    return {"error": error_body}


def raise_promptvault_error(
    code: str,
    status_code: int,
    message: str,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """Raise a standardized PromptVault HTTPException.

    Args:
        code: Error code (VALIDATION_ERROR, API_KEY_TEST_FAILED, etc.)
        status_code: HTTP Status Code (400, 404, etc.)
        message: Human readable message
        details: Optional extra details
    """
    raise HTTPException(status_code=status_code, detail=_error_body(code, message, details))


def cipher_error_response(exc: CipherError) -> Tuple[int, Dict[str, Any]]:
    """Map a cipher failure to (status_code, detail). Never echoes the exception text."""
    for cls in type(exc).__mro__:
        if cls in CIPHER_ERROR_RESPONSES:
            code, status_code, message = CIPHER_ERROR_RESPONSES[cls]
            return status_code, _error_body(code, message)
    return 500, _error_body("ENCRYPTION_ERROR", "Credential encryption failed")


def raise_cipher_error(exc: CipherError) -> None:
    status_code, detail = cipher_error_response(exc)
    raise HTTPException(status_code=status_code, detail=detail) from exc
