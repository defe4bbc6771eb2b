"""
Policy -- kernel-side knobs for the adoption workflow and its queries.

Responsibility:
    Frozen value objects the services read their tunables from.  The
    kernel never reads configuration files; ``shelter_config.bridges``
    builds these from the loaded configuration, and tests construct them
    directly.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

from shelter_kernel.domain.follow_up import DEFAULT_FOLLOW_UP_TYPE


@dataclass(frozen=True)
class WorkflowPolicy:
    """
    Guarantees:
        - default_follow_up_intervals are non-negative day offsets.
        - default_trial_period_days is None (trials need an explicit
          length) or a positive opt-in default length.
    """

    enforce_transitions: bool = True
    default_follow_up_intervals: tuple[int, ...] = (7, 30, 90)
    default_follow_up_type: str = DEFAULT_FOLLOW_UP_TYPE
    default_trial_period_days: int | None = None

    def __post_init__(self) -> None:
        if any(d < 0 for d in self.default_follow_up_intervals):
            raise ValueError("follow-up intervals must not be negative")
        if self.default_trial_period_days is not None and self.default_trial_period_days <= 0:
            raise ValueError("default_trial_period_days must be positive")
        if not self.default_follow_up_type:
            raise ValueError("default_follow_up_type must not be empty")


@dataclass(frozen=True)
class QueryPolicy:
    """Paging limits for list queries."""

    default_limit: int = 20
    max_limit: int = 100

    def __post_init__(self) -> None:
        if self.default_limit <= 0:
            raise ValueError("default_limit must be positive")
        if self.max_limit < self.default_limit:
            raise ValueError("max_limit must be >= default_limit")

    def effective_limit(self, requested: int | None) -> int:
        """Requested limit, defaulted when missing or zero, capped at max."""
        if not requested:
            return self.default_limit
        return min(requested, self.max_limit)
