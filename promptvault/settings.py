"""Settings and configuration."""
from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Populate os.environ from .env; ENCRYPTION_KEY is read from the environment
# by get_credential_cipher() each time a cipher is built, not cached here.
load_dotenv()


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./promptvault.db"

    # "postgres" (any SQLAlchemy URL) or "memory" (process-local, dev only)
    api_key_store_backend: str = "postgres"

    dev_mode: bool = False
    log_level: str = "INFO"

    # Provider connection tests
    provider_test_timeout_seconds: float = 10.0

    model_config = {
        "env_file": ".env",
        "extra": "ignore"
    }


settings = Settings()
