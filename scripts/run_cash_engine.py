#!/usr/bin/env python3
"""
Run the cash engine for one model version and print the run summary.

Either point at an existing version, or seed a new Draft version from a
JSON file holding the three financial tabs:

    {"pnl": {...}, "bs": {...}, "cf": {...}}

Usage:
    python3 scripts/run_cash_engine.py --db-url sqlite:///planner.db \\
        --create-tables --tabs-file tabs.json --force
    python3 scripts/run_cash_engine.py --version-id <uuid> --start 2025 --end 2030
    python3 scripts/run_cash_engine.py --version-id <uuid> --status
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from uuid import UUID

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

DB_URL = "sqlite:///planner.db"


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the cash engine for a model version",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--db-url", default=DB_URL, help="SQLAlchemy database URL")
    parser.add_argument("--version-id", type=UUID, help="Existing model version id")
    parser.add_argument(
        "--tabs-file", type=Path,
        help="JSON file with pnl/bs/cf tabs; seeds a new Draft version",
    )
    parser.add_argument("--name", default="CLI version", help="Name for a seeded version")
    parser.add_argument("--start", type=int, help="First year (default 2025)")
    parser.add_argument("--end", type=int, help="Last year (default 2052)")
    parser.add_argument("--force", action="store_true", help="Ignore cached results")
    parser.add_argument("--status", action="store_true", help="Only show cached status")
    parser.add_argument(
        "--create-tables", action="store_true", help="Create missing tables first",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser.parse_args()


def _seed_version(session_factory, name: str, tabs_file: Path) -> UUID:
    from planner_kernel.db.engine import session_scope
    from planner_kernel.models import ModelVersion, VersionTab
    from planner_kernel.models.version_tab import FINANCIAL_TABS

    tabs = json.loads(tabs_file.read_text())
    with session_scope(session_factory) as session:
        version = ModelVersion(name=name)
        session.add(version)
        session.flush()
        for tab in FINANCIAL_TABS:
            if tab in tabs:
                session.add(VersionTab(version_id=version.id, tab=tab, data=tabs[tab]))
        return version.id


def main() -> int:
    args = _parse_args()

    from planner_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
    from planner_kernel.logging_config import configure_logging
    from planner_services import CashEngineService

    configure_logging(level=getattr(logging, args.log_level.upper(), logging.WARNING))
    init_engine_from_url(args.db_url)
    if args.create_tables:
        create_tables()
    session_factory = get_session_factory()

    version_id = args.version_id
    if version_id is None:
        if args.tabs_file is None:
            print("error: pass --version-id or --tabs-file", file=sys.stderr)
            return 2
        version_id = _seed_version(session_factory, args.name, args.tabs_file)
        print(f"Seeded version {version_id}")

    service = CashEngineService(session_factory)

    if args.status:
        status = service.get_status(version_id)
        print(json.dumps({
            "version_id": str(status.version_id),
            "has_results": status.has_results,
            "computed_at": str(status.computed_at) if status.computed_at else None,
            "converged": status.converged,
            "years_processed": status.years_processed,
            "total_iterations": status.total_iterations,
        }, indent=2))
        return 0

    year_range = None
    if args.start is not None or args.end is not None:
        year_range = (args.start or 2025, args.end or 2052)

    result = service.run_for_version(
        version_id, force_recalculation=args.force, year_range=year_range,
    )
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
