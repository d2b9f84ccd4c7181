from functools import lru_cache
from typing import List, Optional

from json import loads as json_loads, JSONDecodeError

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the coding challenge backend.

    All values come from environment variables or backend/.env.
    This is the single source of truth for:
    - environment (dev/staging/prod)
    - database URL
    - auth / token lifetimes (session, invite links, password reset links)
    - email provider
    - GitHub submission repositories
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # High-level environment flags
    environment: str = Field(
        default="dev",
        description="Deployment environment identifier (dev|staging|prod)",
    )
    debug: bool = Field(default=True)

    # Database
    database_url: str = Field(
        default="sqlite:///./dev.db",
        description="SQLAlchemy-style DB URL (SQLite for dev, Postgres in prod).",
    )
    slow_db_query_ms: float = Field(default=250)
    log_db_sql: bool = Field(default=False)

    # Auth / tokens
    jwt_secret: str = Field(
        default="supersecret",
        description="Signing secret for session, invite and reset tokens; override outside dev.",
    )
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(
        default=60,
        description="Session token lifetime in minutes.",
    )
    invite_link_expiration_days: int = Field(
        default=5,
        description="How long an invite link stays valid.",
    )
    reset_password_expiration_minutes: int = Field(
        default=30,
        description="How long a password reset link stays valid.",
    )
    password_min_length: int = Field(default=8)

    # Submissions
    submission_expiration_days: int = Field(
        default=5,
        description="Days an applicant has to turn in a solution once started.",
    )

    # Frontend / CORS
    frontend_url: str = Field(default="http://localhost:5173")
    allowed_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        description=(
            "Allowed frontend origins. Either a comma-separated string or a JSON list like "
            '["http://localhost:5173","http://127.0.0.1:5173"].'
        ),
    )
    session_cookie_name: str = Field(default="cc_session")

    # API docs toggle
    enable_docs: bool = Field(default=False)

    # Email
    email_provider: str = Field(default="log", description="log|resend")
    email_from: str = Field(default="Coding Challenge <no-reply@codingchallenge.local>")
    resend_api_key: Optional[str] = Field(default=None)

    # GitHub submission repositories
    github_api_url: str = Field(default="https://api.github.com")
    github_token: Optional[str] = Field(default=None)
    github_org: str = Field(default="codingchallenge-submissions")

    def origins_list(self) -> List[str]:
        """
        Normalize ALLOWED_ORIGINS into a clean List[str] for CORSMiddleware.

        Supports a comma-separated string and a JSON array.
        """
        raw_str = str(self.allowed_origins or "").strip()
        if not raw_str:
            return []

        if raw_str.startswith("[") and raw_str.endswith("]"):
            try:
                parsed = json_loads(raw_str)
                if isinstance(parsed, list):
                    return [str(o).strip() for o in parsed if str(o).strip()]
            except JSONDecodeError:
                # Fall back to naive split if JSON is malformed
                pass

        return [o.strip() for o in raw_str.split(",") if o.strip()]

    @property
    def is_prod(self) -> bool:
        return self.environment.lower() in {"prod", "production"}

    @property
    def github_enabled(self) -> bool:
        return bool(self.github_token)


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the app only parses env once.
    """
    return Settings()


settings = get_settings()
