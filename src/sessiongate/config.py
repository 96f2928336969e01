from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = "mongodb://localhost:27017/sessiongate"
    redis_url: str = "redis://localhost:6379/0"
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    use_memory_store: bool = False  # In-process cache and user store instead of Redis/MongoDB
    session_ttl_seconds: int = 60 * 60 * 24 * 5  # 5 days
    max_sessions_per_user: int = 8
    cookie_secure: bool = True  # Disable only for plain-HTTP local development
    google_client_ids: list[str] = []  # Accepted `aud` values for ID tokens, required unless an identity provider is injected
    google_tokeninfo_url: str = "https://oauth2.googleapis.com/tokeninfo"
    identity_timeout: float = 10.0
    cors_origins: list[str] = []

    model_config = {
        "env_file": [".env"],
        "env_prefix": "SESSIONGATE_",
        "extra": "ignore",
    }
