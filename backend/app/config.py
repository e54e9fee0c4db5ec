from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite+aiosqlite:///./tubekit.db"

    # Auth (bearer tokens issued for the identity provider's user id)
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 168

    # Identity provider webhook (svix-style "whsec_..." secret)
    identity_webhook_secret: str = ""

    # Mux (transcoding)
    mux_token_id: str = ""
    mux_token_secret: str = ""
    mux_webhook_secret: str = ""
    mux_api_base: str = "https://api.mux.com"
    mux_webhook_tolerance_seconds: int = 300

    # UploadThing (file storage)
    uploadthing_api_key: str = ""
    uploadthing_api_base: str = "https://api.uploadthing.com"

    # Title/description generation (OpenAI-compatible chat completions)
    open_router_api_key: str = ""
    generation_api_base: str = "https://openrouter.ai/api/v1"
    generation_model: str = "deepseek/deepseek-r1:free"

    # Workflow runs
    workflow_max_attempts: int = 3
    workflow_retry_backoff_seconds: float = 1.0
    workflow_run_ttl_seconds: int = 86400
    workflow_lease_seconds: int = 600
    workflow_resume_interval_seconds: int = 60

    # Redis (optional - falls back to in-memory if not configured)
    redis_url: str = ""

    # Rate limit applied per authenticated user
    rate_limit: str = "10/10 seconds"

    # App Config
    cors_origins: str = "http://localhost:3000"
    environment: str = "development"

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
