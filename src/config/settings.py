"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

DEFAULT_CORS_ORIGINS = (
    "https://portdemy.com,"
    "https://portdemy.com/,"
    "http://localhost:3000,"
    "http://localhost:8080"
)


class Settings(BaseSettings):
    # D-ID credential in "identifier:secret" form. Required.
    did_api_key: str = Field(min_length=1)

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Origin used as the default allowed_origins for new client keys
    frontend_origin: str = "*"
    # Comma-separated browser origins; "*" allows any origin
    cors_allowed_origins: str = DEFAULT_CORS_ORIGINS

    # Upstream D-ID API
    did_api_base: str = "https://api.d-id.com"
    did_notifications_url: str = "wss://notifications.d-id.com"
    upstream_timeout: float = 30.0  # seconds, 0 = wait forever
    upstream_verify_tls: bool = True

    # Hand the server key to the browser when client-key issuance fails
    client_key_fallback: bool = True

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def upstream_timeout_seconds(self) -> float | None:
        return self.upstream_timeout if self.upstream_timeout > 0 else None


@lru_cache
def get_settings() -> Settings:
    return Settings()


class MissingCredentialError(RuntimeError):
    """Raised at startup when DID_API_KEY is not configured."""


def load_settings() -> Settings:
    """Load settings for startup, turning a missing credential into a clear error."""
    try:
        return get_settings()
    except ValidationError as e:
        if any(err["loc"] == ("did_api_key",) for err in e.errors()):
            raise MissingCredentialError("Missing DID_API_KEY environment variable") from e
        raise
