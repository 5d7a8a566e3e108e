"""
Initialize leave balances for every active employee and active leave type.
Run at onboarding and at the new-year rollover; safe to re-run.

Usage:
  python scripts/initialize_leave_year.py --year 2027 --actor-id 1
  python scripts/initialize_leave_year.py --year 2027 --actor-id 1 --reconcile
"""
import argparse
import logging
import sys
from pathlib import Path

# Add project root so leave_engine is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.orm import Session  # noqa: E402
from leave_engine.core.logging import setup_logging  # noqa: E402
from leave_engine.db import session as db_session  # noqa: E402
from leave_engine.models.leave import LeaveBalance  # noqa: E402
from leave_engine.services import ledger_service as ledger  # noqa: E402

logger = logging.getLogger("initialize_leave_year")


def main() -> int:
    parser = argparse.ArgumentParser(description="Initialize leave balances for a year")
    parser.add_argument("--year", type=int, required=True, help="Calendar year (e.g. 2027)")
    parser.add_argument("--actor-id", type=int, required=True, help="Employee id recorded in the audit log")
    parser.add_argument("--reconcile", action="store_true", help="Check every balance of the year afterwards")
    args = parser.parse_args()

    setup_logging()
    db_session.init_models()
    db: Session = db_session.SessionLocal()
    try:
        result = ledger.initialize_year(db, args.year, actor_id=args.actor_id)
        print(
            f"Year {result['year']}: {result['employees_processed']} employees, "
            f"{result['balances_created']} balances created"
        )
        if result["failed_employee_ids"]:
            print(f"  Failed (lock contention): {result['failed_employee_ids']}")

        mismatches = 0
        if args.reconcile:
            balances = db.query(LeaveBalance).filter(LeaveBalance.year == args.year).all()
            for balance in balances:
                check = ledger.reconcile_balance(db, balance.employee_id, balance.leave_type_id, args.year)
                if not check["consistent"]:
                    mismatches += 1
                    print(
                        f"  Mismatch balance {check['balance_id']}: "
                        f"used={check['used_days']} approved={check['approved_days']}"
                    )
            print(f"Reconciled {len(balances)} balances, {mismatches} mismatches")
        return 1 if result["failed_employee_ids"] or mismatches else 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
