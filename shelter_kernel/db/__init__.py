"""Database layer - engine, base classes, types."""

from shelter_kernel.db.base import (
    UUID,
    Base,
    EnumString,
    TrackedBase,
    UTCDateTime,
    UUIDString,
)
from shelter_kernel.db.engine import (
    build_engine,
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from shelter_kernel.db.types import Money, round_money, to_money

__all__ = [
    "build_engine",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "EnumString",
    "UUIDString",
    "UUID",
    "Money",
    "round_money",
    "to_money",
]
