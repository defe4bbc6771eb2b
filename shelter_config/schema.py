"""
ShelterConfiguration schema.

Defines the typed, frozen form of the YAML configuration.  The loader
parses YAML into these types; ``bridges`` turns them into kernel policy
objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowConfig:
    """Adoption workflow behavior."""

    enforce_transitions: bool = True
    default_follow_up_intervals: tuple[int, ...] = (7, 30, 90)
    default_follow_up_type: str = "visit"
    default_trial_period_days: int | None = None


@dataclass(frozen=True)
class QueriesConfig:
    default_limit: int = 20
    max_limit: int = 100


@dataclass(frozen=True)
class OutboxConfig:
    # Retries before an entry is abandoned
    max_attempts: int = 5


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ShelterConfiguration:
    """Complete runtime configuration."""

    database: DatabaseConfig
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    queries: QueriesConfig = field(default_factory=QueriesConfig)
    outbox: OutboxConfig = field(default_factory=OutboxConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source_path: str | None = None
