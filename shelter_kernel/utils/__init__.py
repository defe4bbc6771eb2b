"""Utility modules for the shelter kernel."""

from shelter_kernel.utils.identifiers import parse_id, parse_optional_id

__all__ = [
    "parse_id",
    "parse_optional_id",
]
