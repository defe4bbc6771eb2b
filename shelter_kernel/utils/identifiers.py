"""
Identifier parsing.

Callers hand the workflow ids as strings.  ``parse_id`` is the only place
they become UUIDs, so a malformed id surfaces as a validation error before
any database read.
"""

from uuid import UUID

from shelter_kernel.exceptions import InvalidIdentifierError


def parse_id(value: str | UUID, field_name: str = "id") -> UUID:
    """
    Parse ``value`` into a UUID.

    Raises:
        InvalidIdentifierError: If value is empty or not a UUID.
    """
    if isinstance(value, UUID):
        return value
    if not value or not isinstance(value, str):
        raise InvalidIdentifierError(field_name, str(value))
    try:
        return UUID(value.strip())
    except ValueError as exc:
        raise InvalidIdentifierError(field_name, value) from exc


def parse_optional_id(value: str | UUID | None, field_name: str = "id") -> UUID | None:
    """Like parse_id, but None and empty strings pass through as None."""
    if value is None or value == "":
        return None
    return parse_id(value, field_name)
