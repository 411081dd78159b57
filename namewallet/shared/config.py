"""Configuration for name registration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from namewallet.features.names.policy import (
    CENT,
    MAX_NAME_LENGTH,
    MAX_VALUE_LENGTH,
    MIN_FIRSTUPDATE_DEPTH,
)

logger = logging.getLogger(__name__)


def resolve_storage_dir(storage_dir: str | Path | None = None) -> Path:
    if storage_dir:
        return Path(storage_dir).expanduser()

    env_dir = os.getenv("NAMEWALLET_DIR")
    if env_dir:
        return Path(env_dir).expanduser()

    return Path.home() / ".config" / "namewallet"


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
        return default


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
        return default


@dataclass
class RegistrationConfig:
    maturity_depth: int = MIN_FIRSTUPDATE_DEPTH
    fee_unit: int = CENT
    name_amount: int = CENT
    poll_interval_seconds: float = 5.0
    testnet: bool = False
    max_name_length: int = MAX_NAME_LENGTH
    max_value_length: int = MAX_VALUE_LENGTH
    storage_dir: Path | None = None

    def __post_init__(self):
        if self.maturity_depth < 1:
            raise ValueError("Maturity depth must be at least one block")
        if self.fee_unit <= 0:
            raise ValueError("Fee unit must be positive")
        if self.name_amount <= 0:
            raise ValueError("Name amount must be positive")

    @classmethod
    def from_environment(cls) -> "RegistrationConfig":
        testnet = os.getenv("NAMEWALLET_TESTNET", "").lower() in ("1", "true", "yes")
        maturity_depth = _env_int("NAMEWALLET_MATURITY_DEPTH", MIN_FIRSTUPDATE_DEPTH)
        if maturity_depth < 1:
            logger.warning("Maturity depth %d is too small, using default", maturity_depth)
            maturity_depth = MIN_FIRSTUPDATE_DEPTH

        return cls(
            maturity_depth=maturity_depth,
            poll_interval_seconds=_env_float("NAMEWALLET_POLL_INTERVAL", 5.0),
            testnet=testnet,
            storage_dir=resolve_storage_dir(),
        )
