"""Environment-driven settings.

Values come from the process environment, optionally seeded from a ``.env``
file. Command line flags override everything read here.
"""
import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from .constants import CONNECTION_DEFAULTS, LOGGING_DEFAULTS


class PrecheckSettings(BaseModel):
    host: Optional[str] = None
    port: int = Field(default=CONNECTION_DEFAULTS["port"], ge=1, le=65535)
    user: str = CONNECTION_DEFAULTS["user"]
    log_prefix: str = LOGGING_DEFAULTS["log_prefix"]
    connect_timeout: int = Field(default=CONNECTION_DEFAULTS["connect_timeout"], ge=1)
    maintenance_database: str = CONNECTION_DEFAULTS["maintenance_database"]
    fail_on_not_ready: bool = False


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def load_settings(dotenv_path: Optional[str] = None) -> PrecheckSettings:
    """Build settings from the environment.

    Args:
        dotenv_path: Explicit ``.env`` file; by default the nearest one above
            the working directory is used.
            Variables already set in the environment are never overridden.

    Returns:
        PrecheckSettings populated from ``PG*`` and ``PRECHECK_*`` variables
    """
    load_dotenv(dotenv_path or find_dotenv(usecwd=True))

    return PrecheckSettings(
        host=os.getenv("PGHOST") or None,
        port=int(os.getenv("PGPORT", str(CONNECTION_DEFAULTS["port"]))),
        user=os.getenv("PGUSER", CONNECTION_DEFAULTS["user"]),
        log_prefix=os.getenv("PRECHECK_LOG_PREFIX", LOGGING_DEFAULTS["log_prefix"]),
        connect_timeout=int(
            os.getenv("PRECHECK_CONNECT_TIMEOUT", str(CONNECTION_DEFAULTS["connect_timeout"]))
        ),
        maintenance_database=os.getenv(
            "PRECHECK_MAINTENANCE_DB", CONNECTION_DEFAULTS["maintenance_database"]
        ),
        fail_on_not_ready=_env_flag("PRECHECK_FAIL_ON_NOT_READY"),
    )
