# freightflow_auth/config.py
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# --- Load Environment Variables ---
load_dotenv()

logger = logging.getLogger(__name__)

SQLITE_FALLBACK_URL = "sqlite:///./db/auth.db"

DEFAULT_CORS_ORIGINS = (
    "http://localhost:5500,http://127.0.0.1:5500,"
    "http://localhost:3000,http://localhost:5173"
)


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


class AuthConfig:
    """Deployment settings, read from the environment (and ``.env``)."""

    def __init__(
        self,
        database_url: Optional[str] = None,
        reset_token_ttl_minutes: int = 10,
        reset_link_base_url: str = "http://localhost:5500/pages/reset-password.html",
        bcrypt_rounds: int = 10,
        sendgrid_api_key: Optional[str] = None,
        mail_from_email: Optional[str] = None,
        mail_from_name: str = "FreightFlow Support",
        cors_allowed_origins: Optional[List[str]] = None,
        api_host: str = "127.0.0.1",
        api_port: int = 5000,
        log_level: str = "INFO",
    ):
        self.database_url = database_url or SQLITE_FALLBACK_URL
        self.reset_token_ttl_minutes = reset_token_ttl_minutes
        self.reset_link_base_url = reset_link_base_url
        self.bcrypt_rounds = bcrypt_rounds
        self.sendgrid_api_key = sendgrid_api_key
        self.mail_from_email = mail_from_email
        self.mail_from_name = mail_from_name
        self.cors_allowed_origins = (
            cors_allowed_origins
            if cors_allowed_origins is not None
            else _split_origins(DEFAULT_CORS_ORIGINS)
        )
        self.api_host = api_host
        self.api_port = api_port
        self.log_level = log_level

        if self.reset_token_ttl_minutes <= 0:
            raise ConfigurationError("RESET_TOKEN_TTL_MINUTES must be positive")

    @property
    def sendgrid_configured(self) -> bool:
        return bool(self.sendgrid_api_key and self.mail_from_email)

    @classmethod
    def from_env(cls) -> "AuthConfig":
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            logger.warning("Using SQLite fallback database: %s", SQLITE_FALLBACK_URL)

        return cls(
            database_url=database_url,
            reset_token_ttl_minutes=_int_env("RESET_TOKEN_TTL_MINUTES", 10),
            reset_link_base_url=os.environ.get(
                "RESET_LINK_BASE_URL",
                "http://localhost:5500/pages/reset-password.html",
            ),
            bcrypt_rounds=_int_env("BCRYPT_ROUNDS", 10),
            sendgrid_api_key=os.environ.get("SENDGRID_API_KEY"),
            mail_from_email=os.environ.get("MAIL_FROM_EMAIL"),
            mail_from_name=os.environ.get("MAIL_FROM_NAME", "FreightFlow Support"),
            cors_allowed_origins=_split_origins(
                os.environ.get("CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS)
            ),
            api_host=os.environ.get("API_HOST", "127.0.0.1"),
            api_port=_int_env("PORT", 5000),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
