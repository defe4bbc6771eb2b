"""
Config -> Kernel Bridges.

Functions that convert a ShelterConfiguration into kernel-compatible
inputs.  These live in shelter_config (the producer) because the kernel
must never import shelter_config.

Usage:
    from shelter_config import get_active_config
    from shelter_config.bridges import build_workflow_policy, build_query_policy

    config = get_active_config()
    workflow = AdoptionWorkflowService(
        session, auditor,
        policy=build_workflow_policy(config),
        query_policy=build_query_policy(config),
    )
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from shelter_config.schema import ShelterConfiguration
from shelter_kernel.db.engine import init_engine_from_url
from shelter_kernel.domain.policy import QueryPolicy, WorkflowPolicy
from shelter_kernel.logging_config import configure_logging


def build_workflow_policy(config: ShelterConfiguration) -> WorkflowPolicy:
    wf = config.workflow
    return WorkflowPolicy(
        enforce_transitions=wf.enforce_transitions,
        default_follow_up_intervals=wf.default_follow_up_intervals,
        default_follow_up_type=wf.default_follow_up_type,
        default_trial_period_days=wf.default_trial_period_days,
    )


def build_query_policy(config: ShelterConfiguration) -> QueryPolicy:
    return QueryPolicy(
        default_limit=config.queries.default_limit,
        max_limit=config.queries.max_limit,
    )


def init_engine_from_config(config: ShelterConfiguration) -> Engine:
    """Initialize the kernel's module-level engine from ``config.database``."""
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )


def configure_logging_from_config(config: ShelterConfiguration) -> None:
    configure_logging(level=config.logging.level)
