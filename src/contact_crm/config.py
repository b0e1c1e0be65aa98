"""Contact CRM — configuration loaded from environment."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Database ──────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./contact_crm.db"

    # ── Auth tokens ───────────────────────────────────────
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    token_ttl_days: int = 7
    allow_admin_signup: bool = True

    # ── Uploads ───────────────────────────────────────────
    upload_dir: str = "./uploads"
    max_upload_bytes: int = 5 * 1024 * 1024

    # ── HTTP ──────────────────────────────────────────────
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    api_base_url: str = "http://localhost:8000/api"

    # ── App ───────────────────────────────────────────────
    app_name: str = "Contact CRM"
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton settings instance
settings = Settings()
