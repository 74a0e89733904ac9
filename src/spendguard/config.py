"""Engine configuration loaded from the environment."""

import os
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from spendguard.domain.errors import ValidationError

ENV_PREFIX = "SPENDGUARD_"


@dataclass(frozen=True)
class EngineConfig:
    """Tunable values for the spending-governance engine.

    Attributes:
        default_approval_threshold: Threshold given to lazily created settings
        default_request_expiration_hours: Expiration given to lazily created settings
        warning_ratio: Usage share above which a limit produces a warning
        ledger_timeout_seconds: Upper bound for a single ledger debit
        storage_timeout_seconds: How long a write waits for a database lock
        sweep_interval_seconds: Pause between background expiration sweeps
        tracker_retention_days: Age after window end at which trackers are purged
    """

    default_approval_threshold: Decimal = Decimal("10.00")
    default_request_expiration_hours: int = 72
    warning_ratio: Decimal = Decimal("0.8")
    ledger_timeout_seconds: float = 10.0
    storage_timeout_seconds: float = 5.0
    sweep_interval_seconds: float = 300.0
    tracker_retention_days: int = 400

    def __post_init__(self):
        if self.default_approval_threshold < 0:
            raise ValidationError("default_approval_threshold must not be negative")
        if self.default_request_expiration_hours <= 0:
            raise ValidationError("default_request_expiration_hours must be positive")
        if not Decimal("0") < self.warning_ratio <= Decimal("1"):
            raise ValidationError("warning_ratio must be in (0, 1]")
        for name in ("ledger_timeout_seconds", "storage_timeout_seconds", "sweep_interval_seconds"):
            if getattr(self, name) <= 0:
                raise ValidationError(f"{name} must be positive")
        if self.tracker_retention_days < 0:
            raise ValidationError("tracker_retention_days must not be negative")


def _coerce(name: str, raw: str, kind: type):
    try:
        if kind is Decimal:
            return Decimal(raw)
        return kind(raw)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid value for {ENV_PREFIX}{name.upper()}: '{raw}'")


def load_config(environ: Optional[dict[str, str]] = None) -> EngineConfig:
    """Build an EngineConfig from SPENDGUARD_* environment variables.

    Args:
        environ: Mapping to read instead of os.environ

    Returns:
        EngineConfig with defaults for every unset variable

    Raises:
        ValidationError: If a variable is set to a malformed value
    """
    environ = os.environ if environ is None else environ
    defaults = EngineConfig()
    values = {}
    for f in fields(EngineConfig):
        raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is None:
            continue
        values[f.name] = _coerce(f.name, raw, type(getattr(defaults, f.name)))
    return EngineConfig(**values)


def default_database_path() -> str:
    """Return SPENDGUARD_DB_PATH or ~/.spendguard/spendguard.db."""
    database_path = os.environ.get(f"{ENV_PREFIX}DB_PATH")
    if database_path is not None:
        return database_path

    db_dir = Path.home() / ".spendguard"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "spendguard.db")
