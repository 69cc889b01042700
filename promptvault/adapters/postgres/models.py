"""SQLAlchemy Models for the credential store."""
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class ApiKey(Base):
    """A user's third-party provider API key, encrypted at rest.

    ``encrypted_key`` holds the credential cipher's opaque
    ``salt:iv:authTag:ciphertext`` string and never the raw key.
    """
    __tablename__ = "api_keys"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_api_keys_user_provider"),
    )
    id = Column(String(36), primary_key=True)  # UUID7
    user_id = Column(String(255), nullable=False, index=True)
    provider = Column(String(32), nullable=False)
    encrypted_key = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="not_configured")
    last_tested_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
