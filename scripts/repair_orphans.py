#!/usr/bin/env python3
"""
Orphaned Certificate Repair

Finds certificates whose verification entry is missing (an issuance that
was interrupted between its two writes) and restores the entry.

Usage:
    # Report only:
    python scripts/repair_orphans.py --dry-run

    # Repair:
    python scripts/repair_orphans.py
"""
import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from eventeye.config import settings  # noqa: E402
from eventeye.services import EventService, IntegrityService  # noqa: E402
from eventeye.store import build_store  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("repair_orphans")


def main() -> int:
    parser = argparse.ArgumentParser(description="Repair certificates without a verification entry")
    parser.add_argument("--dry-run", action="store_true", help="Only list orphaned certificates")
    args = parser.parse_args()

    store = build_store(settings)
    try:
        integrity = IntegrityService(store, EventService(store))

        if args.dry_run:
            orphans = integrity.find_orphans()
            for orphan in orphans:
                print(f"{orphan.reason.value:15} {orphan.event_id} {orphan.cert_id} {orphan.verification_code}")
            print(f"{len(orphans)} orphaned certificates")
            return 0

        report = integrity.repair()
        for orphan in report.unrepairable:
            logger.warning(f"Unrepairable ({orphan.reason.value}): certificate {orphan.cert_id}")
        print(f"Repaired {len(report.repaired)}, unrepairable {len(report.unrepairable)}")
        return 1 if report.unrepairable else 0
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
