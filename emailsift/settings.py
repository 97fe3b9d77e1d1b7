"""Process-level defaults read from the environment (and a .env file)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .aggregator import DEFAULT_CHUNK_SIZE
from .config import ValidationConfig
from .models import ListOrder

logger = logging.getLogger(__name__)

DEFAULT_RULES = "generic"
DEFAULT_ORDER = ListOrder.ALPHABETICAL
DEFAULT_WORKERS = 1
DEFAULT_LOG_LEVEL = "INFO"
RULE_SETS = ("generic", "strict")


@dataclass(frozen=True)
class Settings:
    rules: str = DEFAULT_RULES
    order: ListOrder = DEFAULT_ORDER
    max_results: Optional[int] = None
    workers: int = DEFAULT_WORKERS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    log_level: str = DEFAULT_LOG_LEVEL

    def validation_config(self) -> ValidationConfig:
        return ValidationConfig.from_name(self.rules)


def _env(name: str) -> str:
    return (os.environ.get(name) or "").strip()


def _env_positive_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = _env(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value < 1:
        logger.warning(f"Ignoring {name}={raw!r}; expected a positive integer.")
        return default
    return value


def get_rules() -> str:
    raw = _env("EMAILSIFT_RULES").lower()
    if not raw:
        return DEFAULT_RULES
    if raw not in RULE_SETS:
        logger.warning(f"Ignoring EMAILSIFT_RULES={raw!r}. Options: {list(RULE_SETS)}")
        return DEFAULT_RULES
    return raw


def get_order() -> ListOrder:
    raw = _env("EMAILSIFT_ORDER")
    if not raw:
        return DEFAULT_ORDER
    try:
        return ListOrder.from_name(raw)
    except ValueError as exc:
        logger.warning(f"Ignoring EMAILSIFT_ORDER: {exc}")
        return DEFAULT_ORDER


def load_settings(use_dotenv: bool = True) -> Settings:
    """Build settings from the environment, falling back to defaults per value."""
    if use_dotenv:
        load_dotenv()
    return Settings(
        rules=get_rules(),
        order=get_order(),
        max_results=_env_positive_int("EMAILSIFT_MAX_RESULTS", None),
        workers=_env_positive_int("EMAILSIFT_WORKERS", DEFAULT_WORKERS),
        chunk_size=_env_positive_int("EMAILSIFT_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        log_level=(_env("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )
