import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/family_vault"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # S3 / MinIO settings
    s3_endpoint_url: str = os.getenv("S3_ENDPOINT_URL", "")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "")
    s3_bucket_name: str = os.getenv("S3_BUCKET_NAME", "documents")
    s3_region: str = os.getenv("S3_REGION", "us-east-1")
    s3_presigned_url_expiry: int = int(os.getenv("S3_PRESIGNED_URL_EXPIRY", "3600"))

    # SMTP settings
    smtp_server: str = os.getenv("SMTP_SERVER", "smtp.gmail.com")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_username: str = os.getenv("SMTP_USERNAME", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    smtp_timeout: int = int(os.getenv("SMTP_TIMEOUT", "30"))
    smtp_from_address: str | None = os.getenv("SMTP_FROM_ADDRESS") or None

    # One-time passwords
    otp_secret: str = os.getenv("OTP_SECRET", "change-me")
    otp_ttl_minutes: int = int(os.getenv("OTP_TTL_MINUTES", "10"))

    # Nominees
    nominee_email_domain: str = os.getenv("NOMINEE_EMAIL_DOMAIN", "gmail.com")
    nominee_verification_ttl_hours: int = int(
        os.getenv("NOMINEE_VERIFICATION_TTL_HOURS", "168")
    )
    nominee_verification_url: str = os.getenv(
        "NOMINEE_VERIFICATION_URL", "familyvault://verify-nominee"
    )

    # Tokens
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "authenticated")
    grant_token_ttl_minutes: int = int(os.getenv("GRANT_TOKEN_TTL_MINUTES", "60"))
    reset_token_ttl_minutes: int = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "15"))

    # Background jobs
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    inactivity_check_interval_seconds: int = int(
        os.getenv("INACTIVITY_CHECK_INTERVAL_SECONDS", "3600")
    )

    push_notifications_enabled: bool = _env_bool("PUSH_NOTIFICATIONS_ENABLED")

    # Branding
    brand_name: str = os.getenv("BRAND_NAME", "Family Vault")


settings = Settings()
