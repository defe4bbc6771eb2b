"""
Tests for YAML configuration loading and the kernel bridges.

Covers:
- Packaged defaults parse into the frozen schema
- Unknown sections / keys and wrongly typed values are rejected
- Environment overrides for the file path and the database URL
- Bridges produce the kernel policy objects
"""

import dataclasses
from pathlib import Path

import pytest
import yaml

from shelter_config import CONFIG_PATH_ENV, DATABASE_URL_ENV, get_active_config
from shelter_config.bridges import (
    build_query_policy,
    build_workflow_policy,
    init_engine_from_config,
)
from shelter_config.loader import load_configuration, parse_configuration
from shelter_config.schema import ShelterConfiguration
from shelter_kernel.db.engine import get_engine, reset_engine
from shelter_kernel.domain.policy import QueryPolicy, WorkflowPolicy


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
    return monkeypatch


@pytest.fixture
def write_config(tmp_path):
    def _write(data: dict) -> Path:
        path = tmp_path / "shelter.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


class TestDefaults:
    def test_packaged_defaults(self, clean_env):
        config = get_active_config()

        assert isinstance(config, ShelterConfiguration)
        assert config.database.url.startswith("postgresql://")
        assert config.workflow.enforce_transitions is True
        assert config.workflow.default_follow_up_intervals == (7, 30, 90)
        assert config.workflow.default_trial_period_days is None
        assert config.queries.max_limit == 100
        assert config.outbox.max_attempts == 5
        assert config.logging.level == "INFO"

    def test_config_is_frozen(self, clean_env):
        config = get_active_config()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.workflow.enforce_transitions = False


class TestParsing:
    def test_minimal_file(self, write_config):
        path = write_config({"database": {"url": "sqlite://"}})

        config = load_configuration(path)

        assert config.database.url == "sqlite://"
        assert config.database.pool_size == 20
        assert config.workflow.default_follow_up_type == "visit"
        assert config.source_path == str(path)

    def test_missing_database_url(self):
        with pytest.raises(KeyError):
            parse_configuration({"workflow": {}})

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="unknown configuration sections: billing"):
            parse_configuration({"database": {"url": "sqlite://"}, "billing": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="unknown keys in 'workflow': enforce"):
            parse_configuration({"database": {"url": "sqlite://"}, "workflow": {"enforce": True}})

    @pytest.mark.parametrize(
        "section",
        [
            {"workflow": {"enforce_transitions": "yes"}},
            {"workflow": {"default_follow_up_intervals": 7}},
            {"workflow": {"default_follow_up_intervals": [7, "30"]}},
            {"queries": {"max_limit": True}},
            {"outbox": {"max_attempts": 2.5}},
        ],
    )
    def test_wrong_types(self, section):
        with pytest.raises(ValueError):
            parse_configuration({"database": {"url": "sqlite://"}, **section})

    def test_trial_length_opt_in(self):
        config = parse_configuration(
            {"database": {"url": "sqlite://"}, "workflow": {"default_trial_period_days": 21}}
        )
        assert config.workflow.default_trial_period_days == 21

    def test_logging_level_upper_cased(self):
        config = parse_configuration({"database": {"url": "sqlite://"}, "logging": {"level": "debug"}})
        assert config.logging.level == "DEBUG"

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- database\n")
        with pytest.raises(ValueError, match="top level must be a mapping"):
            load_configuration(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_configuration(tmp_path / "absent.yaml")


class TestEnvironmentOverrides:
    def test_config_path_from_env(self, clean_env, write_config):
        path = write_config({"database": {"url": "sqlite://"}, "outbox": {"max_attempts": 2}})
        clean_env.setenv(CONFIG_PATH_ENV, str(path))

        config = get_active_config()

        assert config.outbox.max_attempts == 2

    def test_explicit_path_wins(self, clean_env, write_config, tmp_path):
        path = write_config({"database": {"url": "sqlite://"}, "outbox": {"max_attempts": 2}})
        clean_env.setenv(CONFIG_PATH_ENV, str(tmp_path / "absent.yaml"))

        assert get_active_config(path).outbox.max_attempts == 2

    def test_database_url_override(self, clean_env, captured_logs):
        clean_env.setenv(DATABASE_URL_ENV, "sqlite:///shelter.db")

        config = get_active_config()

        assert config.database.url == "sqlite:///shelter.db"
        assert config.database.pool_size == 20
        loaded = [r for r in captured_logs() if r["message"] == "config_loaded"]
        assert loaded[-1]["database_url_overridden"] is True


class TestBridges:
    def test_workflow_policy(self):
        config = parse_configuration(
            {
                "database": {"url": "sqlite://"},
                "workflow": {
                    "enforce_transitions": False,
                    "default_follow_up_intervals": [3, 14],
                    "default_follow_up_type": "call",
                    "default_trial_period_days": 30,
                },
            }
        )

        assert build_workflow_policy(config) == WorkflowPolicy(
            enforce_transitions=False,
            default_follow_up_intervals=(3, 14),
            default_follow_up_type="call",
            default_trial_period_days=30,
        )

    def test_invalid_workflow_values_surface(self):
        config = parse_configuration(
            {"database": {"url": "sqlite://"}, "workflow": {"default_follow_up_intervals": [-1]}}
        )
        with pytest.raises(ValueError, match="must not be negative"):
            build_workflow_policy(config)

    def test_query_policy(self):
        config = parse_configuration(
            {"database": {"url": "sqlite://"}, "queries": {"default_limit": 5, "max_limit": 10}}
        )
        assert build_query_policy(config) == QueryPolicy(default_limit=5, max_limit=10)

    def test_init_engine(self):
        config = parse_configuration({"database": {"url": "sqlite://"}})
        try:
            engine = init_engine_from_config(config)
            assert get_engine() is engine
            assert engine.dialect.name == "sqlite"
        finally:
            reset_engine()
