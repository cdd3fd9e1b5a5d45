"""
Refresh classification and projection matching

Run after any bulk import that bypassed the API (direct SQL loads,
restored dumps). The script will:
1. Recompute OTD / at-risk / exclusion fields on every PO and milestone states
2. Run one automatic projection matching pass
3. Optionally re-derive staff roles from titles (--staff-roles)

Usage:
    python scripts/refresh_classification_and_matching.py [--as-of YYYY-MM-DD] [--staff-roles]
"""
import argparse
from datetime import date

from merchops.db.session import SessionLocal
from merchops.logging_config import setup_logging, get_logger
from merchops.services.import_reconciliation import refresh_after_import
from merchops.services.staff_service import normalize_staff_roles

logger = get_logger(__name__)


def refresh(as_of: date = None, staff_roles: bool = False):
    db = SessionLocal()
    try:
        summary = refresh_after_import(db, as_of=as_of)
        if staff_roles:
            summary["staff_roles_changed"] = normalize_staff_roles(db)
        db.commit()

        matching = summary["matching"]
        print(f"Classified {summary['classified']} POs ({summary['at_risk']} at risk)")
        print(
            f"Projections: {matching['matched']} matched, {matching['partial']} partial, "
            f"{matching['expired']} expired, {matching['unmatched']} unmatched, {matching['skipped']} skipped"
        )
        for error in summary["errors"]:
            print(f"  ! {error}")
        return summary

    except Exception as e:
        db.rollback()
        logger.error(f"Refresh failed: {e}", exc_info=True)
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Recompute classification and projection matches")
    parser.add_argument("--as-of", type=date.fromisoformat, default=None, help="Reporting date (default: today)")
    parser.add_argument("--staff-roles", action="store_true", help="Re-derive staff roles from titles")
    args = parser.parse_args()

    setup_logging()
    print("=" * 60)
    print("Classification & Projection Matching Refresh")
    print("=" * 60)
    print()
    refresh(as_of=args.as_of, staff_roles=args.staff_roles)
