#!/usr/bin/env python3
"""
Purge expired onboarding progress.

Expired snapshots are already ignored (and erased) when a user comes back,
but users who never return leave rows behind in onboarding_sessions. This
sweeps them.

Usage:
    python scripts/purge_expired_onboarding.py            # Delete expired rows
    python scripts/purge_expired_onboarding.py --dry-run  # Only report
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv
load_dotenv()

from onboarding.persistence import (
    KEY_PREFIX,
    InMemoryKeyValueStore,
    ProgressPersistence,
    SupabaseKeyValueStore,
)
from thittam.config import settings
from thittam.db.client import get_service_client


def main():
    parser = argparse.ArgumentParser(description="Purge expired onboarding progress")
    parser.add_argument("--dry-run", action="store_true", help="Report without deleting")
    args = parser.parse_args()

    client = get_service_client()
    rows = (
        client.table("onboarding_sessions")
        .select("key, value")
        .like("key", f"{KEY_PREFIX}:%")
        .execute()
    ).data or []

    ttl = timedelta(hours=settings.onboarding_progress_ttl_hours)
    store = SupabaseKeyValueStore(client)
    expired = []

    for row in rows:
        # Evaluate against a scratch copy so --dry-run never deletes
        scratch = InMemoryKeyValueStore({row["key"]: row["value"]})
        if ProgressPersistence(scratch, row["key"], ttl=ttl).load().is_empty:
            expired.append(row["key"])

    print(f"Found {len(rows)} onboarding snapshots, {len(expired)} expired or unreadable")

    if args.dry_run:
        for key in expired:
            print(f"  would delete {key}")
        return

    for key in expired:
        store.remove(key)
    print(f"Deleted {len(expired)} snapshots")


if __name__ == "__main__":
    main()
