import json

import pytest
from typer.testing import CliRunner

from promotion_gate import main
from promotion_gate.main import GateRuntime
from promotion_gate.schemas.core import Build

runner = CliRunner()


@pytest.fixture
def runtime(settings, monkeypatch):
    gate = GateRuntime(settings)
    monkeypatch.setattr(main, 'runtime', gate)
    return gate


def approve(*args):
    return runner.invoke(main.cli, ['approve', 'release', 'webapp', '42', *args])


def test_approve_records_and_status_reports_it(runtime):
    pending = runner.invoke(main.cli, ['status', 'release', 'webapp', '42'])
    assert pending.exit_code == 0
    assert json.loads(pending.stdout)['satisfied'] is False

    result = approve('--user', 'alice', '--group', 'release-managers', '--param', 'TARGET=staging')
    assert result.exit_code == 0
    assert 'Approved release for webapp#42' in result.stdout

    current = runner.invoke(main.cli, ['status', 'release', 'webapp', '42'])
    body = json.loads(current.stdout)
    assert body['satisfied'] is True
    assert body['record']['principal_name'] == 'alice'
    assert runtime.records.find_approval(Build(job='webapp', number=42), 'release').build_env_vars()['TARGET'] == 'staging'


def test_approve_exit_codes(runtime):
    assert approve('--user', 'bob').exit_code == 1
    assert approve('--user', 'alice', '--group', 'release-managers', '--param', 'TARGET=moon').exit_code == 2
    assert approve('--user', 'alice', '--group', 'release-managers', '--param', 'TARGET').exit_code == 2
    assert runtime.records.get_approvals(Build(job='webapp', number=42)) == []


def test_unknown_process_is_a_usage_error(runtime):
    assert runner.invoke(main.cli, ['status', 'nightly', 'webapp', '1']).exit_code == 2
    result = runner.invoke(main.cli, ['approve', 'nightly', 'webapp', '1', '--user', 'alice'])
    assert result.exit_code == 2


def test_processes_lists_names(runtime):
    result = runner.invoke(main.cli, ['processes'])
    assert result.exit_code == 0
    assert result.stdout.split() == ['release']
