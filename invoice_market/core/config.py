"""
Marketplace configuration parameters.

Defines market rules and operational settings. Values can be overridden
through INVOICE_MARKET_* environment variables, optionally loaded from a
.env file.
"""

import logging
import math
import os
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

from invoice_market.core.errors import ValidationError
from invoice_market.utils.validation import parse_amount

ENV_PREFIX = "INVOICE_MARKET_"


@dataclass(frozen=True)
class MarketConfig:
    """Market-wide configuration parameters"""

    # Market rules
    bid_spread: Decimal = Decimal("20")  # Bids must stay this far below face amount
    currency: str = "EUR"

    # Sweep
    sweep_interval: float = 2.0  # Seconds between expiry sweeps

    # Logging
    log_level: int = logging.INFO
    log_dir: Path = Path("logs")
    log_to_file: bool = False

    def __post_init__(self):
        if self.bid_spread < 0:
            raise ValidationError(f"bid_spread must be >= 0, got {self.bid_spread}")
        if not math.isfinite(self.sweep_interval) or self.sweep_interval <= 0:
            raise ValidationError(f"sweep_interval must be > 0, got {self.sweep_interval}")


def _parse_bool(raw: str, name: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValidationError(f"{name} must be a boolean, got {raw!r}")


def _parse_level(raw: str, name: str) -> int:
    value = raw.strip()
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise ValidationError(f"{name} must be a logging level, got {raw!r}")
    return level


def config_from_mapping(values: Mapping[str, Optional[str]], base: Optional[MarketConfig] = None) -> MarketConfig:
    """
    Build a MarketConfig from INVOICE_MARKET_* keys.

    Unknown keys are ignored; missing keys keep the base value.
    """
    base = base or MarketConfig()
    overrides = {}

    def get(key: str) -> Optional[str]:
        raw = values.get(ENV_PREFIX + key)
        return raw if raw not in (None, "") else None

    raw = get("BID_SPREAD")
    if raw is not None:
        overrides["bid_spread"] = parse_amount(raw, "bid_spread")
    raw = get("CURRENCY")
    if raw is not None:
        overrides["currency"] = raw.strip().upper()
    raw = get("SWEEP_INTERVAL")
    if raw is not None:
        try:
            overrides["sweep_interval"] = float(raw)
        except ValueError:
            raise ValidationError(f"sweep_interval must be a number, got {raw!r}") from None
    raw = get("LOG_LEVEL")
    if raw is not None:
        overrides["log_level"] = _parse_level(raw, "log_level")
    raw = get("LOG_DIR")
    if raw is not None:
        overrides["log_dir"] = Path(raw)
    raw = get("LOG_TO_FILE")
    if raw is not None:
        overrides["log_to_file"] = _parse_bool(raw, "log_to_file")

    return replace(base, **overrides)


def load_config(env_file: Optional[str] = None) -> MarketConfig:
    """
    Load configuration from the environment.

    Args:
        env_file: Optional .env file. Process environment wins over it.

    Returns:
        MarketConfig instance
    """
    values = {}
    if env_file:
        values.update(dotenv_values(env_file))
    values.update({k: v for k, v in os.environ.items() if k.startswith(ENV_PREFIX)})
    return config_from_mapping(values)
