"""Tests for configuration loading and template substitution."""

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from orgcheck.core.config import ChecksConfig, State, parse_hours_minutes
from orgcheck.core.yaml_settings import YamlWithIncludesSettingsSource


@pytest.fixture
def fixtures_dir():
    return Path(__file__).parent.parent.parent / "loader" / "fixtures"


def test_defaults_load_into_state(make_state):
    state = make_state()

    checks = state.config.checks
    assert checks.long_duration_threshold == timedelta(hours=10)
    assert checks.duration_mismatch
    assert state.config.conflicts.running_clock_end == "next_clock"
    assert state.config.files.extensions == [".org"]
    assert state.config.files.org_dir == Path.home() / "org"


def test_path_and_config_templates_substituted(make_state, fixtures_dir):
    """{Path.home} and {config.*} are replaced after loading."""
    source = YamlWithIncludesSettingsSource(
        State, yaml_file=str(fixtures_dir / "templated.yaml")
    )
    data = source()
    assert "{Path.home}" in str(data)

    state = make_state(**data)

    assert state.config.files.org_dir == Path.home() / "notes"
    assert state.config.files.org_files == [Path.home() / "notes" / "inbox.org"]


def test_runtime_templates_preserved(make_state, fixtures_dir):
    """Templates filled in at setup time, like {log_root}, stay."""
    source = YamlWithIncludesSettingsSource(
        State, yaml_file=str(fixtures_dir / "templated.yaml")
    )
    state = make_state(**source())

    assert state.config.logger.file.path == "{log_root}/{run_name}/orgcheck.log"


def test_env_fills_values_yaml_leaves_unset(make_state, monkeypatch):
    """Environment variables rank below YAML but still apply."""
    monkeypatch.setenv("ORGCHECK_CONFIG__FILES__ORG_FILES", '["/tmp/inbox.org"]')

    state = make_state()

    assert state.config.files.org_files == [Path("/tmp/inbox.org")]


def test_parse_hours_minutes():
    assert parse_hours_minutes("10:00") == timedelta(hours=10)
    assert parse_hours_minutes("0:05") == timedelta(minutes=5)
    assert parse_hours_minutes("36:15") == timedelta(hours=36, minutes=15)
    assert parse_hours_minutes("-1:30") == -timedelta(hours=1, minutes=30)
    for bad in ("10", "1:5", "1:60", "ten"):
        with pytest.raises(ValueError):
            parse_hours_minutes(bad)


def test_invalid_long_duration_limit_rejected():
    with pytest.raises(ValidationError):
        ChecksConfig(long_duration_limit="soon")
