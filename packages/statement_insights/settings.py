"""Runtime configuration for ``statement_insights``.

Two layers:

- :class:`Settings` holds process-level values read from the environment
  (after a local ``.env`` is loaded by the CLI): the database URL, the
  forecast low-balance floor, the header scan window and the bank label.
- :class:`DetectionThresholds` holds the numeric tunables the detectors use.
  Every detector takes an optional ``thresholds`` argument and falls back to
  :data:`DEFAULT_THRESHOLDS`.

Environment variables
---------------------
``STATEMENT_INSIGHTS_DATABASE_URL``
    SQLAlchemy URL for the ledger store.
``STATEMENT_INSIGHTS_LOW_BALANCE``
    Positive balances below this floor produce a forecast warning.
``STATEMENT_INSIGHTS_HEADER_SCAN_ROWS``
    How many leading rows the header locator inspects.
``STATEMENT_INSIGHTS_BANK_LABEL``
    Bank name reported in parse metadata.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///statement_insights.db"
DEFAULT_BANK_LABEL = "State Bank of India"

_ENV_PREFIX = "STATEMENT_INSIGHTS_"


@dataclass(frozen=True, slots=True)
class DetectionThresholds:
    """Numeric knobs shared by the recurring, anomaly and duplicate passes."""

    # Recurring detector: members within this fraction of the group mean survive.
    recurring_amount_tolerance: float = 0.05
    # Confidence divisor is this fraction of the ideal period length.
    confidence_divisor_fraction: float = 0.3
    # Amount above which an uncategorized recurring debit is an installment.
    installment_amount: float = 5000.0

    # Anomaly detector
    duplicate_amount_places: int = 2
    high_amount_ratio: float = 3.0
    high_severity_ratio: float = 5.0
    spike_ratio: float = 2.0


DEFAULT_THRESHOLDS = DetectionThresholds()


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    database_url: str = DEFAULT_DATABASE_URL
    low_balance: float = Field(default=1000.0, ge=0)
    header_scan_rows: int = Field(default=40, ge=1)
    bank_label: str = DEFAULT_BANK_LABEL


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``STATEMENT_INSIGHTS_*`` variables.

    Unset or empty variables keep their defaults. Invalid values raise
    ``ValueError`` naming the offending variable.
    """

    env = os.environ if environ is None else environ
    raw: dict[str, str] = {}
    for field_name in Settings.model_fields:
        value = env.get(_ENV_PREFIX + field_name.upper())
        if value is not None and value.strip() != "":
            raw[field_name] = value.strip()
    try:
        return Settings(**raw)
    except ValidationError as e:
        names = ", ".join(_ENV_PREFIX + str(err["loc"][0]).upper() for err in e.errors())
        raise ValueError(f"Invalid configuration in {names}: {e}") from e


__all__ = [
    "DEFAULT_DATABASE_URL",
    "DEFAULT_BANK_LABEL",
    "DetectionThresholds",
    "DEFAULT_THRESHOLDS",
    "Settings",
    "load_settings",
]
