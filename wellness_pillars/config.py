from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "wellness.db"
DEFAULT_REMOTE_TIMEOUT = 10.0
DEFAULT_AUTOSAVE_DELAY = 1.0


@dataclass
class Settings:
    db_path: str = DEFAULT_DB_PATH
    remote_url: str = ""
    remote_token: str = ""
    remote_timeout: float = DEFAULT_REMOTE_TIMEOUT
    user_id: str = ""
    autosave_delay: float = DEFAULT_AUTOSAVE_DELAY
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_url and self.user_id)


def _env_lookup(key: str) -> Optional[str]:
    return os.getenv(key)


def _float(raw: str, default: float, key: str) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning("invalid %s=%r, using %s", key, raw, default)
        return default


def load_settings(lookup: Optional[Callable[[str], Optional[str]]] = None) -> Settings:
    """
    Build settings from a key lookup (Streamlit secrets in the app, the
    environment otherwise). Missing keys keep their defaults.
    """
    lookup = lookup or _env_lookup

    def get(key: str, default: str = "") -> str:
        v = lookup(key)
        return str(v).strip() if v is not None and str(v).strip() else default

    return Settings(
        db_path=get("WELLNESS_DB_PATH", DEFAULT_DB_PATH),
        remote_url=get("WELLNESS_REMOTE_URL"),
        remote_token=get("WELLNESS_REMOTE_TOKEN"),
        remote_timeout=_float(get("WELLNESS_REMOTE_TIMEOUT", str(DEFAULT_REMOTE_TIMEOUT)), DEFAULT_REMOTE_TIMEOUT, "WELLNESS_REMOTE_TIMEOUT"),
        user_id=get("WELLNESS_USER_ID"),
        autosave_delay=_float(get("WELLNESS_AUTOSAVE_DELAY", str(DEFAULT_AUTOSAVE_DELAY)), DEFAULT_AUTOSAVE_DELAY, "WELLNESS_AUTOSAVE_DELAY"),
        log_level=get("WELLNESS_LOG_LEVEL", "INFO").upper(),
        log_format=get("WELLNESS_LOG_FORMAT", "json").lower(),
    )
