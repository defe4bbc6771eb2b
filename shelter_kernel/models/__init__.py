"""SQLAlchemy ORM models for the shelter kernel."""

from shelter_kernel.models.adoption_application import AdoptionApplication
from shelter_kernel.models.adoption_record import AdoptionRecord, FollowUp
from shelter_kernel.models.animal import Animal
from shelter_kernel.models.audit_log import AuditAction, AuditLog
from shelter_kernel.models.side_effect import (
    PendingSideEffect,
    SideEffectStatus,
    SideEffectType,
)

__all__ = [
    "Animal",
    "AdoptionApplication",
    "AdoptionRecord",
    "FollowUp",
    "AuditAction",
    "AuditLog",
    "PendingSideEffect",
    "SideEffectStatus",
    "SideEffectType",
]
