"""Credential Domain Models."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AiProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    GROK = "grok"
    OPENROUTER = "openrouter"


class ApiKeyStatus(str, Enum):
    NOT_CONFIGURED = "not_configured"
    ACTIVE = "active"
    ERROR = "error"


class ApiKeyMetadata(BaseModel):
    """Public view of a stored API key. Never carries key material."""
    id: str
    provider: AiProvider
    status: ApiKeyStatus
    last_tested_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UpsertApiKeyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(..., alias="apiKey", min_length=1)

    @field_validator("api_key")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("API key cannot be empty")
        return v
