from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices
from typing import Optional


class Settings(BaseSettings):
    """Application configuration using Pydantic v2 settings.

    - Parses comma-separated CORS origins into a list
    - Reads environment from APP_ENV or ENVIRONMENT
    - Builds the Postgres URL from DB_* parts when DATABASE_URL is not set
    - Ignores unknown env keys
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Land Records API"
    environment: str = Field(default="dev", validation_alias=AliasChoices("APP_ENV", "ENVIRONMENT"))
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL"))

    # CORS (comma-separated string)
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:5173")

    # Postgres: either a full SQLAlchemy URL or the individual parts
    database_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("DATABASE_URL"))
    db_host: Optional[str] = Field(default=None, validation_alias=AliasChoices("DB_HOST"))
    db_port: int = Field(default=5432, validation_alias=AliasChoices("DB_PORT"))
    db_user: Optional[str] = Field(default=None, validation_alias=AliasChoices("DB_USER"))
    db_password: Optional[str] = Field(default=None, validation_alias=AliasChoices("DB_PASSWORD"))
    db_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("DB_NAME"))
    db_sslmode: str = Field(default="require", validation_alias=AliasChoices("DB_SSLMODE"))
    db_pool_size: int = Field(default=5, validation_alias=AliasChoices("DB_POOL_SIZE"))

    # Object storage (S3 compatible) for plot photos and scanned files
    s3_bucket: str = Field(default="plot-documents", validation_alias=AliasChoices("S3_BUCKET"))
    s3_endpoint_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("S3_ENDPOINT_URL"))
    aws_access_key_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("AWS_ACCESS_KEY_ID"))
    aws_secret_access_key: Optional[str] = Field(default=None, validation_alias=AliasChoices("AWS_SECRET_ACCESS_KEY"))
    aws_region: str = Field(default="ap-south-1", validation_alias=AliasChoices("AWS_REGION"))
    signed_url_ttl_seconds: int = Field(default=3600, validation_alias=AliasChoices("SIGNED_URL_TTL_SECONDS"))
    default_submission: str = Field(default="SUBMISSION-III", validation_alias=AliasChoices("DEFAULT_SUBMISSION"))
    # Survey maps are not split by submission: {map_prefix}/{ID}.pdf
    map_prefix: str = Field(default="maps", validation_alias=AliasChoices("MAP_PREFIX"))

    # Outbound mail for password reset
    smtp_host: Optional[str] = Field(default=None, validation_alias=AliasChoices("SMTP_HOST"))
    smtp_port: int = Field(default=587, validation_alias=AliasChoices("SMTP_PORT"))
    smtp_username: Optional[str] = Field(default=None, validation_alias=AliasChoices("SMTP_USERNAME", "EMAIL_USER"))
    smtp_password: Optional[str] = Field(default=None, validation_alias=AliasChoices("SMTP_PASSWORD", "EMAIL_PASS"))
    smtp_from: Optional[str] = Field(default=None, validation_alias=AliasChoices("SMTP_FROM"))
    smtp_use_tls: bool = Field(default=True, validation_alias=AliasChoices("SMTP_USE_TLS"))

    # Frontend base URL used to build reset links
    frontend_base_url: str = Field(default="http://localhost:5173", validation_alias=AliasChoices("FRONTEND_BASE_URL"))
    reset_token_ttl_seconds: int = Field(default=3600, validation_alias=AliasChoices("RESET_TOKEN_TTL_SECONDS"))

    # Accept stored plaintext passwords from accounts created before hashing.
    # Off unless an account migration is in progress.
    allow_legacy_plaintext_passwords: bool = Field(
        default=False,
        validation_alias=AliasChoices("ALLOW_LEGACY_PLAINTEXT_PASSWORDS"),
        description="Accept password_hash values that still hold the plaintext password",
    )

    # Admin bootstrap on startup
    admin_username: Optional[str] = Field(default=None, validation_alias=AliasChoices("ADMIN_USERNAME"))
    admin_password: Optional[str] = Field(default=None, validation_alias=AliasChoices("ADMIN_PASSWORD"))
    admin_email: Optional[str] = Field(default=None, validation_alias=AliasChoices("ADMIN_EMAIL"))
    admin_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("ADMIN_NAME"))

    @property
    def cors_origins_list(self) -> list[str]:
        return [x.strip() for x in str(self.cors_origins).split(",") if x.strip()]


settings = Settings()
