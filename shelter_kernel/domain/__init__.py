"""Pure domain layer - lifecycle tables, follow-up arithmetic, requests, clock."""

from shelter_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from shelter_kernel.domain.lifecycle import (
    AdoptionStatus,
    AnimalStatus,
    ApplicationStatus,
    PaymentStatus,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "AdoptionStatus",
    "AnimalStatus",
    "ApplicationStatus",
    "PaymentStatus",
]
