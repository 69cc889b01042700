import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from promptvault.adapters.postgres.models import Base
from promptvault.domain.credentials.cipher import CredentialCipher

TEST_PASSPHRASE = "test-encryption-key-32-characters-long-for-testing"


@pytest.fixture(autouse=True)
def encryption_env(monkeypatch):
    """Every test starts with a valid ENCRYPTION_KEY in the environment."""
    monkeypatch.setenv("ENCRYPTION_KEY", TEST_PASSPHRASE)


@pytest.fixture
def cipher():
    return CredentialCipher(TEST_PASSPHRASE)


@pytest.fixture
def test_engine():
    # Single shared in-memory SQLite connection, usable from the TestClient threadpool
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()
