"""
Configuration Loader (``shelter_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``shelter_config.schema`` dataclasses.  Runtime callers go through
``shelter_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown top-level sections and unknown keys are rejected, so a typo in
  the file never silently falls back to a default.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url``  -> ``KeyError`` propagates.
* Wrong value types or unknown keys  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from shelter_config.schema import (
    DatabaseConfig,
    LoggingConfig,
    OutboxConfig,
    QueriesConfig,
    ShelterConfiguration,
    WorkflowConfig,
)

_SECTIONS = frozenset({"database", "workflow", "queries", "outbox", "logging"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _section(data: dict[str, Any], name: str, allowed: set[str]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' must be a mapping")
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"unknown keys in '{name}': {', '.join(sorted(unknown))}")
    return section


def _int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    return value


def _bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be true or false, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    section = _section(
        data, "database",
        {"url", "echo", "pool_size", "max_overflow", "pool_timeout", "pool_recycle"},
    )
    defaults = DatabaseConfig(url="")
    return DatabaseConfig(
        url=section["url"],
        echo=_bool(section.get("echo", defaults.echo), "database.echo"),
        pool_size=_int(section.get("pool_size", defaults.pool_size), "database.pool_size"),
        max_overflow=_int(
            section.get("max_overflow", defaults.max_overflow), "database.max_overflow",
        ),
        pool_timeout=_int(
            section.get("pool_timeout", defaults.pool_timeout), "database.pool_timeout",
        ),
        pool_recycle=_int(
            section.get("pool_recycle", defaults.pool_recycle), "database.pool_recycle",
        ),
    )


def parse_workflow(data: dict[str, Any]) -> WorkflowConfig:
    section = _section(
        data, "workflow",
        {
            "enforce_transitions",
            "default_follow_up_intervals",
            "default_follow_up_type",
            "default_trial_period_days",
        },
    )
    defaults = WorkflowConfig()
    intervals = section.get(
        "default_follow_up_intervals", list(defaults.default_follow_up_intervals),
    )
    if not isinstance(intervals, list):
        raise ValueError("'workflow.default_follow_up_intervals' must be a list")
    trial_days = section.get("default_trial_period_days", defaults.default_trial_period_days)
    return WorkflowConfig(
        enforce_transitions=_bool(
            section.get("enforce_transitions", defaults.enforce_transitions),
            "workflow.enforce_transitions",
        ),
        default_follow_up_intervals=tuple(
            _int(d, "workflow.default_follow_up_intervals") for d in intervals
        ),
        default_follow_up_type=str(
            section.get("default_follow_up_type", defaults.default_follow_up_type)
        ),
        default_trial_period_days=(
            None if trial_days is None
            else _int(trial_days, "workflow.default_trial_period_days")
        ),
    )


def parse_queries(data: dict[str, Any]) -> QueriesConfig:
    section = _section(data, "queries", {"default_limit", "max_limit"})
    defaults = QueriesConfig()
    return QueriesConfig(
        default_limit=_int(
            section.get("default_limit", defaults.default_limit), "queries.default_limit",
        ),
        max_limit=_int(section.get("max_limit", defaults.max_limit), "queries.max_limit"),
    )


def parse_outbox(data: dict[str, Any]) -> OutboxConfig:
    section = _section(data, "outbox", {"max_attempts"})
    return OutboxConfig(
        max_attempts=_int(
            section.get("max_attempts", OutboxConfig().max_attempts), "outbox.max_attempts",
        ),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    section = _section(data, "logging", {"level"})
    return LoggingConfig(level=str(section.get("level", LoggingConfig().level)).upper())


def parse_configuration(
    data: dict[str, Any],
    source_path: str | None = None,
) -> ShelterConfiguration:
    """
    Parse a full configuration mapping.

    Raises:
        KeyError: if ``database.url`` is missing.
        ValueError: on unknown sections/keys or wrongly typed values.
    """
    unknown = set(data) - _SECTIONS
    if unknown:
        raise ValueError(f"unknown configuration sections: {', '.join(sorted(unknown))}")
    return ShelterConfiguration(
        database=parse_database(data),
        workflow=parse_workflow(data),
        queries=parse_queries(data),
        outbox=parse_outbox(data),
        logging=parse_logging(data),
        source_path=source_path,
    )


def load_configuration(path: Path) -> ShelterConfiguration:
    """Load and parse a YAML configuration file."""
    return parse_configuration(load_yaml_file(path), source_path=str(path))
