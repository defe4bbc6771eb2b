"""Read-only selectors for the shelter kernel."""

from shelter_kernel.selectors.adoption_selector import AdoptionSelector
from shelter_kernel.selectors.application_selector import ApplicationSelector
from shelter_kernel.selectors.base import BaseSelector

__all__ = [
    "BaseSelector",
    "ApplicationSelector",
    "AdoptionSelector",
]
