#!/usr/bin/env python3
"""
Replay pending side effects from the outbox.

When the adoption workflow cannot flip an application to completed or an
animal to adopted/available, it queues the change in
``pending_side_effects``.  This script retries the pending entries, oldest
first, and abandons entries that have failed ``outbox.max_attempts`` times.

Uses SHELTER_CONFIG_PATH / SHELTER_DATABASE_URL like every other entrypoint.

Usage:
    python3 scripts/retry_side_effects.py --actor-id <uuid>
    python3 scripts/retry_side_effects.py --actor-id <uuid> --limit 50
    python3 scripts/retry_side_effects.py --actor-id <uuid> --list
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from shelter_config import get_active_config
from shelter_config.bridges import configure_logging_from_config, init_engine_from_config
from shelter_kernel.db.engine import session_scope
from shelter_kernel.exceptions import InvalidIdentifierError
from shelter_kernel.services.side_effect_outbox import SideEffectOutbox
from shelter_kernel.utils.identifiers import parse_id


def _print_pending(outbox: SideEffectOutbox, limit: int | None) -> None:
    entries = outbox.pending(limit)
    if not entries:
        print("No pending side effects.")
        return
    print(f"{'ID':<38} {'TYPE':<20} {'ENTITY':<38} {'TARGET':<12} ATTEMPTS")
    for entry in entries:
        print(
            f"{str(entry.id):<38} {entry.effect_type.value:<20} "
            f"{str(entry.entity_id):<38} {entry.target_status:<12} {entry.attempts}"
        )
        if entry.last_error:
            print(f"    last error: {entry.last_error}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Replay pending adoption side effects")
    parser.add_argument("--actor-id", required=True, help="UUID recorded as the acting user")
    parser.add_argument("--limit", type=int, default=None, help="Max entries to process")
    parser.add_argument("--config", default=None, help="YAML config file (overrides SHELTER_CONFIG_PATH)")
    parser.add_argument("--list", action="store_true", help="Only list pending entries")
    args = parser.parse_args()

    try:
        actor_id = parse_id(args.actor_id, "actor_id")
    except InvalidIdentifierError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    config = get_active_config(args.config)
    configure_logging_from_config(config)
    init_engine_from_config(config)

    with session_scope() as session:
        outbox = SideEffectOutbox(session, max_attempts=config.outbox.max_attempts)
        if args.list:
            _print_pending(outbox, args.limit)
            return 0
        report = outbox.retry_pending(actor_id, limit=args.limit)

    print(f"Attempted: {report.attempted}")
    print(f"Applied:   {report.applied}")
    print(f"Failed:    {report.failed}")
    print(f"Abandoned: {report.abandoned}")
    return 0 if report.failed == 0 and report.abandoned == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
