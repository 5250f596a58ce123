"""Runtime configuration.

Values come from the environment. An optional ``.env`` at the project
root is loaded first; real environment variables win over it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv

# When installed in editable mode the project root is the repo root.
PROJECT_ROOT = Path(__file__).resolve().parents[3]
ENV_PATH = PROJECT_ROOT / ".env"


class ConfigurationError(Exception):
    """An environment variable holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    api_base: str = "https://cms.example.com/wp-json/wc/v3"
    consumer_key: str = ""
    consumer_secret: str = ""
    currency: str = "INR"
    merchant_name: str = "Storefront"
    payment_method: str = "razorpay"
    http_timeout: float = 10.0
    payment_timeout: float | None = None
    delivery_fee: Decimal = Decimal("50")
    free_delivery_threshold: Decimal = Decimal("500")
    data_dir: Path = PROJECT_ROOT / "data"
    log_level: str = "INFO"


def _clean(value: str | None) -> str:
    return (value or "").strip().strip("'").strip('"')


def _get(name: str) -> str:
    return _clean(os.getenv(name))


def _decimal(name: str, default: Decimal) -> Decimal:
    raw = _get(name)
    if not raw:
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ConfigurationError(f"{name} cannot be negative, got {raw!r}")
    return value


def _seconds(name: str, default: float | None) -> float | None:
    raw = _get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(env_file: Path | None = ENV_PATH) -> Settings:
    if env_file is not None and env_file.exists():
        load_dotenv(dotenv_path=env_file, override=False)

    defaults = Settings()
    api_base = _get("STOREFRONT_API_BASE") or defaults.api_base
    if not api_base.startswith("http"):
        api_base = "https://" + api_base

    data_dir = _get("STOREFRONT_DATA_DIR")

    return Settings(
        api_base=api_base.rstrip("/"),
        consumer_key=_get("STOREFRONT_CONSUMER_KEY"),
        consumer_secret=_get("STOREFRONT_CONSUMER_SECRET"),
        currency=(_get("STOREFRONT_CURRENCY") or defaults.currency).upper(),
        merchant_name=_get("STOREFRONT_MERCHANT_NAME") or defaults.merchant_name,
        payment_method=_get("STOREFRONT_PAYMENT_METHOD") or defaults.payment_method,
        http_timeout=_seconds("STOREFRONT_HTTP_TIMEOUT", defaults.http_timeout),  # type: ignore[arg-type]
        payment_timeout=_seconds("STOREFRONT_PAYMENT_TIMEOUT", None),
        delivery_fee=_decimal("STOREFRONT_DELIVERY_FEE", defaults.delivery_fee),
        free_delivery_threshold=_decimal(
            "STOREFRONT_FREE_DELIVERY_THRESHOLD", defaults.free_delivery_threshold
        ),
        data_dir=Path(data_dir) if data_dir else defaults.data_dir,
        log_level=(_get("STOREFRONT_LOG_LEVEL") or defaults.log_level).upper(),
    )
