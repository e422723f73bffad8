"""
Repair new-event notifications after a partially failed broadcast.

Idempotent: users who already have a notification linking to the event are skipped.

Run:
  python scripts/reconcile_event_notifications.py            # every event
  python scripts/reconcile_event_notifications.py 12 15      # selected event ids
"""
from __future__ import annotations

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select  # noqa: E402

from app.campus import create_app  # noqa: E402
from app.campus.db import session_scope  # noqa: E402
from app.campus.modules.events.models import Event  # noqa: E402
from app.campus.modules.notifications.service import reconcile_event_broadcast  # noqa: E402


def reconcile(event_ids: list[int] | None = None) -> int:
    """Returns the number of notifications created."""
    app = create_app()
    created = 0
    with session_scope(app) as s:
        q = select(Event).order_by(Event.id)
        if event_ids:
            q = q.where(Event.id.in_(event_ids))
        for event in s.scalars(q).all():
            result = reconcile_event_broadcast(s, event)
            if result.attempted:
                print(f"  event {event.id}: delivered={result.delivered} failed={len(result.failed)}")
            created += result.delivered
    print(f"Created {created} missing notifications")
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("event_ids", nargs="*", type=int)
    args = parser.parse_args()
    reconcile(args.event_ids or None)


if __name__ == "__main__":
    main()
