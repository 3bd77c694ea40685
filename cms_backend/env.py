"""
Environment validation for the content backend.

``validate_env`` checks the raw settings once, logs non-blocking warnings and
raises ``EnvValidationError`` for anything the service cannot run without.
``get_env`` memoizes the resulting ``EnvConfig`` per process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import AnyUrl, TypeAdapter, ValidationError
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from cms_backend.config import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_SITE_URL = "https://arqum.org"
DEFAULT_SMTP_PORT = 587

# Order matters: it is the order missing fields are reported in.
EMAIL_FIELDS = (
    ("SMTP_HOST", "smtp_host"),
    ("SMTP_USER", "smtp_user"),
    ("SMTP_PASS", "smtp_pass"),
    ("EMAIL_FROM", "email_from"),
    ("EMAIL_TO", "email_to"),
)

_url_adapter = TypeAdapter(AnyUrl)


class EnvValidationError(Exception):
    """Raised when required environment variables are missing or invalid."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            "Missing or invalid required environment variables:\n"
            + "\n".join(self.errors)
        )


@dataclass(frozen=True)
class DatabaseConfig:
    url: Optional[str]
    in_memory: bool = False


@dataclass(frozen=True)
class SiteConfig:
    url: str


@dataclass(frozen=True)
class EmailConfig:
    smtp_host: str
    smtp_user: str
    smtp_pass: str
    sender: str
    recipient: str
    smtp_port: int = DEFAULT_SMTP_PORT
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class EnvConfig:
    database: DatabaseConfig
    site: SiteConfig
    environment: str = "development"
    email: Optional[EmailConfig] = None
    redis_url: Optional[str] = None
    redis_channel_prefix: str = "cms:changes"
    missing_email_fields: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_email_configured(self) -> bool:
        return self.email is not None

    @property
    def is_realtime_configured(self) -> bool:
        return bool(self.redis_url)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def is_valid_url(value: str) -> bool:
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def _is_valid_database_url(value: str) -> bool:
    try:
        make_url(value)
    except ArgumentError:
        return False
    return True


def _parse_port(raw: Optional[str], warnings: list[str]) -> int:
    if not raw:
        return DEFAULT_SMTP_PORT
    try:
        return int(raw.strip())
    except ValueError:
        warnings.append(
            f"SMTP_PORT must be an integer, using default {DEFAULT_SMTP_PORT}"
        )
        return DEFAULT_SMTP_PORT


def _validate_email(
    settings: Settings, warnings: list[str]
) -> tuple[Optional[EmailConfig], tuple[str, ...]]:
    values = {name: getattr(settings, attr) for name, attr in EMAIL_FIELDS}
    missing = tuple(name for name, value in values.items() if not value)

    if len(missing) == len(EMAIL_FIELDS):
        # Email is simply not set up; the send-email route reports it on use.
        return None, missing

    for name in missing:
        warnings.append(f"{name} is missing but other email config is present")
    if missing:
        warnings.append(
            f"Email configuration is incomplete. Missing: {', '.join(missing)}. "
            "Email functionality will be disabled until all required fields are set."
        )
        return None, missing

    email = EmailConfig(
        smtp_host=values["SMTP_HOST"],
        smtp_user=values["SMTP_USER"],
        smtp_pass=values["SMTP_PASS"],
        sender=values["EMAIL_FROM"],
        recipient=values["EMAIL_TO"],
        smtp_port=_parse_port(settings.smtp_port, warnings),
        timeout_seconds=settings.smtp_timeout_seconds,
    )
    return email, ()


def validate_env(settings: Settings | None = None) -> EnvConfig:
    """
    Validate the environment and return the typed configuration.

    Raises:
        EnvValidationError: if a required variable is missing or malformed.
    """
    settings = settings or get_settings()
    errors: list[str] = []
    warnings: list[str] = []

    database_url = settings.database_url
    if not database_url:
        if not settings.use_in_memory_backends:
            errors.append("DATABASE_URL is required")
    elif not _is_valid_database_url(database_url):
        errors.append("DATABASE_URL must be a valid database URL")

    redis_url = settings.redis_url
    if not redis_url:
        warnings.append(
            "REDIS_URL is not set. Live content updates are only delivered "
            "inside this process."
        )
    elif not is_valid_url(redis_url):
        warnings.append(
            "REDIS_URL is not a valid URL. Live content updates are only "
            "delivered inside this process."
        )
        redis_url = None

    site_url = settings.site_url or DEFAULT_SITE_URL
    if not is_valid_url(site_url):
        warnings.append("SITE_URL is not a valid URL, using default")
        site_url = DEFAULT_SITE_URL

    email, missing_email = _validate_email(settings, warnings)

    if warnings:
        logger.warning("Environment variable warnings:")
        for warning in warnings:
            logger.warning("  %s", warning)

    if errors:
        logger.error("Environment variable validation failed:")
        for error in errors:
            logger.error("  %s", error)
        raise EnvValidationError(errors)

    config = EnvConfig(
        database=DatabaseConfig(
            url=database_url or None,
            in_memory=settings.use_in_memory_backends or not database_url,
        ),
        site=SiteConfig(url=site_url),
        environment=settings.environment,
        email=email,
        redis_url=redis_url,
        redis_channel_prefix=settings.redis_channel_prefix,
        missing_email_fields=missing_email,
        warnings=tuple(warnings),
    )

    logger.info("Environment variables validated successfully")
    if config.is_realtime_configured:
        logger.info("Redis is configured (live updates across processes)")
    if config.is_email_configured:
        logger.info("Email configuration is set up")
    return config


@lru_cache(maxsize=1)
def get_env() -> EnvConfig:
    """Return the validated environment, validating on first use."""
    return validate_env(get_settings())


def validate_startup_env(settings: Settings | None = None) -> Optional[EnvConfig]:
    """
    Validate on application start.

    Production refuses to start with a broken environment; other
    environments log the failure and keep going.
    """
    try:
        if settings is None:
            settings = get_settings()
            return get_env()
        return validate_env(settings)
    except EnvValidationError:
        if settings.environment.lower() == "production":
            logger.error("Fatal: missing required environment variables")
            raise
        logger.exception("Environment validation failed")
        return None
