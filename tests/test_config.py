"""Tests for engine configuration."""

from decimal import Decimal

import pytest

from spendguard.config import EngineConfig, default_database_path, load_config
from spendguard.domain.errors import ValidationError


def test_load_config_defaults():
    assert load_config({}) == EngineConfig()


def test_load_config_reads_environment():
    config = load_config(
        {
            "SPENDGUARD_DEFAULT_APPROVAL_THRESHOLD": "12.50",
            "SPENDGUARD_DEFAULT_REQUEST_EXPIRATION_HOURS": "24",
            "SPENDGUARD_SWEEP_INTERVAL_SECONDS": "60",
        }
    )

    assert config.default_approval_threshold == Decimal("12.50")
    assert config.default_request_expiration_hours == 24
    assert config.sweep_interval_seconds == 60.0


def test_load_config_rejects_malformed_value():
    with pytest.raises(ValidationError, match="SPENDGUARD_TRACKER_RETENTION_DAYS"):
        load_config({"SPENDGUARD_TRACKER_RETENTION_DAYS": "forever"})


@pytest.mark.parametrize(
    "changes",
    [
        {"default_approval_threshold": Decimal("-1")},
        {"default_request_expiration_hours": 0},
        {"warning_ratio": Decimal("1.5")},
        {"ledger_timeout_seconds": 0},
        {"tracker_retention_days": -1},
    ],
)
def test_config_validation(changes):
    with pytest.raises(ValidationError):
        EngineConfig(**changes)


def test_default_database_path_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SPENDGUARD_DB_PATH", str(tmp_path / "custom.db"))
    assert default_database_path() == str(tmp_path / "custom.db")
