from __future__ import annotations

import pytest

from promotion_gate.config import Settings
from promotion_gate.governance.records import BuildRecordStore
from promotion_gate.telemetry import reset_metrics


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DB_PATH=tmp_path / 'gate.sqlite',
        PROCESSES_PATH=tmp_path / 'processes.yaml',
    )


@pytest.fixture
def store(settings) -> BuildRecordStore:
    return BuildRecordStore(settings)


@pytest.fixture(autouse=True)
def _fresh_metrics():
    reset_metrics()
    yield
    reset_metrics()
