"""
Shelter Kernel - Adoption Lifecycle Engine

The workflow core of the animal-shelter backend:
- Adoption application intake and review state machine
- Adoption record creation from approved applications
- Animal availability synchronization
- Follow-up scheduling and trial periods
- Best-effort audit trail and side-effect outbox
"""

__version__ = "0.1.0"
