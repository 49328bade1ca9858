from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "Campus Complaints Server"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    """Pydantic v2 doesn't support parsing List[str] from a plain comma-separated string by default anymore."""
    ALLOWED_HOSTS: Union[str, List[str]] = "http://localhost:3000"
    # Overrides the level of the logging profile when set
    LOG_LEVEL: Optional[str] = None
    LOG_CONFIG_PATH: str = "logging_config.json"
    # Reverse proxies whose X-Forwarded-For header is believed
    TRUSTED_PROXIES: Union[str, List[str]] = ""

    # Database
    DATABASE_URL: str = "sqlite:///./complaints.db"
    DATABASE_ECHO: bool = False

    # Supabase authentication
    SUPABASE_URL: str = "<your-supabase-url>"
    SUPABASE_ANON_KEY: str = "<your-supabase-anon-key>"
    SUPABASE_JWT_SECRET: str = ""
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    SUPABASE_JWT_ALGORITHM: str = "HS256"
    SUPABASE_TIMEOUT: float = 10.0

    # Cloudinary media storage
    CLOUDINARY_CLOUD_NAME: str = "<your-cloudinary-cloud-name>"
    CLOUDINARY_API_KEY: str = "<your-cloudinary-api-key>"
    CLOUDINARY_API_SECRET: str = "<your-cloudinary-api-secret>"
    CLOUDINARY_CHAT_FOLDER: str = "complaint_uploads"
    CLOUDINARY_AVATAR_FOLDER: str = "avatars"

    # Two-factor authentication
    TOTP_ISSUER: str = "Campus Complaints"
    TOTP_VALID_WINDOW: int = 1

    # Rate limiting (per client IP)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT: str = "5/10seconds"
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    @field_validator("ALLOWED_HOSTS", "TRUSTED_PROXIES", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if not v:
            return []
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


settings = Settings()
