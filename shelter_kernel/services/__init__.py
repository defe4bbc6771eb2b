"""Services for the shelter kernel (write side)."""

from shelter_kernel.services.adoption_workflow_service import AdoptionWorkflowService
from shelter_kernel.services.animal_status_sync import AnimalStatusSync
from shelter_kernel.services.auditor_service import AuditorService, AuditTrace, AuditTraceEntry
from shelter_kernel.services.side_effect_outbox import RetryReport, SideEffectOutbox

__all__ = [
    "AdoptionWorkflowService",
    "AnimalStatusSync",
    "AuditorService",
    "AuditTrace",
    "AuditTraceEntry",
    "RetryReport",
    "SideEffectOutbox",
]
