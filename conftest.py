"""Shared fixtures for cadence tests."""

from datetime import datetime

import pytest

from cadence.config import SchedulerConfig
from cadence.service import Scheduler


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Configuration isolated from the user's files and environment."""
    monkeypatch.delenv('CADENCE_STRICT_EXPRESSIONS', raising=False)
    monkeypatch.delenv('CADENCE_MISFIRE_GRACE_TIME', raising=False)
    monkeypatch.delenv('CADENCE_LOG_DIR', raising=False)
    monkeypatch.setenv('CADENCE_DATA_DIR', str(tmp_path / "data"))
    return SchedulerConfig(str(tmp_path / "config.json"))


@pytest.fixture
def scheduler(config):
    return Scheduler(datetime.now(), config=config)
