import json
from typing import Annotated, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode
from sqlalchemy.engine import make_url


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://user:password@db:5432/homematch"
    DATABASE_SSL: bool = True
    REDIS_URL: Optional[str] = "redis://localhost:6379/0"
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = "your_anon_key"
    SUPABASE_SERVICE_ROLE_KEY: str = "your_service_role_key"
    AVATAR_BUCKET: str = "avatars"
    ADMIN_EMAILS: Annotated[List[str], NoDecode] = []
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    INTERACTION_RATE_LIMIT: int = 60

    @field_validator("DATABASE_URL")
    def normalize_database_url(cls, v):
        """
        Rewrites bare postgres URLs to use the asyncpg driver so the same
        value can be shared with tooling that only knows `postgres://`.
        """
        if not v:
            return v
        if v.startswith("postgres://"):
            v = "postgresql://" + v[len("postgres://"):]
        try:
            url = make_url(v)
        except Exception:
            return v
        if url.drivername == "postgresql":
            url = url.set(drivername="postgresql+asyncpg")
        return url.render_as_string(hide_password=False)

    @field_validator("ADMIN_EMAILS", "CORS_ORIGINS", mode="before")
    def split_list(cls, v):
        """Accepts a JSON array or a comma-separated string."""
        if not isinstance(v, str):
            return v
        if v.strip().startswith("["):
            return json.loads(v)
        return [item.strip() for item in v.split(",") if item.strip()]

    @field_validator("ADMIN_EMAILS")
    def lowercase_admin_emails(cls, v):
        return [email.strip().lower() for email in v if email.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
