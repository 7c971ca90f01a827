"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from stockhold.infrastructure.gateway.razorpay_gateway import DEFAULT_API_URL

# When installed in editable mode the project root is the repo root.
_DEFAULT_DB_PATH = Path(__file__).resolve().parents[3] / "data" / "stockhold.db"

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    db_path: Path = _DEFAULT_DB_PATH
    hold_ttl_seconds: int = 15 * 60
    reaper_interval_seconds: float = 60.0
    reaper_batch_size: int = 100
    reaper_enabled: bool = True
    currency: str = "INR"
    gateway_max_attempts: int = 3
    gateway_backoff_seconds: float = 0.5
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""
    razorpay_api_url: str = DEFAULT_API_URL
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def razorpay_configured(self) -> bool:
        """Live gateway use needs the API keys and the webhook secret."""
        return bool(
            self.razorpay_key_id and self.razorpay_key_secret and self.razorpay_webhook_secret
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            db_path=Path(env.get("STOCKHOLD_DB_PATH", defaults.db_path)),
            hold_ttl_seconds=int(env.get("STOCKHOLD_HOLD_TTL_SECONDS", defaults.hold_ttl_seconds)),
            reaper_interval_seconds=float(
                env.get("STOCKHOLD_REAPER_INTERVAL_SECONDS", defaults.reaper_interval_seconds)
            ),
            reaper_batch_size=int(env.get("STOCKHOLD_REAPER_BATCH_SIZE", defaults.reaper_batch_size)),
            reaper_enabled=_flag(env.get("STOCKHOLD_REAPER_ENABLED"), defaults.reaper_enabled),
            currency=env.get("STOCKHOLD_CURRENCY", defaults.currency),
            gateway_max_attempts=int(
                env.get("STOCKHOLD_GATEWAY_MAX_ATTEMPTS", defaults.gateway_max_attempts)
            ),
            gateway_backoff_seconds=float(
                env.get("STOCKHOLD_GATEWAY_BACKOFF_SECONDS", defaults.gateway_backoff_seconds)
            ),
            razorpay_key_id=env.get("RAZORPAY_KEY_ID", ""),
            razorpay_key_secret=env.get("RAZORPAY_KEY_SECRET", ""),
            razorpay_webhook_secret=env.get("RAZORPAY_WEBHOOK_SECRET", ""),
            razorpay_api_url=env.get("RAZORPAY_API_URL", defaults.razorpay_api_url),
            log_level=env.get("STOCKHOLD_LOG_LEVEL", defaults.log_level).upper(),
            log_json=_flag(env.get("STOCKHOLD_LOG_JSON"), defaults.log_json),
        )


def _flag(raw: str | None, default: bool) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in _TRUE
