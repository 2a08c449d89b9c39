"""Runtime configuration loaded from the environment."""

import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_VEHICLE_RATE = Decimal("1.17")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def default_database_url() -> str:
    """Return the SQLite URL under ``~/.backoffice``, creating the directory."""
    db_dir = Path.home() / ".backoffice"
    db_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_dir / 'backoffice.db'}"


@dataclass(frozen=True)
class Settings:
    """Settings shared by the CLI and the web app."""

    database_url: str
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    admin_emails: tuple[str, ...] = field(default_factory=tuple)
    vehicle_rate: Decimal = DEFAULT_VEHICLE_RATE
    log_level: str = "INFO"


def _parse_emails(raw: Optional[str]) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(e.strip().lower() for e in raw.split(",") if e.strip())


def _parse_rate(raw: Optional[str]) -> Decimal:
    if not raw:
        return DEFAULT_VEHICLE_RATE
    try:
        return Decimal(raw.strip())
    except InvalidOperation:
        raise ValueError(f"Invalid BACKOFFICE_VEHICLE_RATE: {raw}")


def load_settings(database_url: Optional[str] = None) -> Settings:
    """Load settings from the environment (and a ``.env`` file when present).

    Args:
        database_url: Explicit database URL overriding the environment

    Returns:
        Settings instance
    """
    load_dotenv()
    url = (
        database_url
        or os.getenv("BACKOFFICE_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or default_database_url()
    )
    return Settings(
        database_url=url,
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
        stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
        admin_emails=_parse_emails(os.getenv("BACKOFFICE_ADMIN_EMAILS")),
        vehicle_rate=_parse_rate(os.getenv("BACKOFFICE_VEHICLE_RATE")),
        log_level=os.getenv("BACKOFFICE_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
