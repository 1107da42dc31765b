#!/usr/bin/env python3
"""
CLI for rewriting legacy event and viewer records.

Records whose legacy and canonical attributes disagree are listed and left
untouched for an operator to resolve.
"""

import argparse
import asyncio
import sys

from golive.migrations.legacy import LegacyMigrator, MigrationReport


def print_report(table: str, report: MigrationReport, dry_run: bool) -> None:
    """Print a summary of one table's migration."""
    verb = "would be migrated" if dry_run else "migrated"
    print(f"\n[{table}] scanned {report.scanned}, {report.migrated} {verb}")
    if report.conflicts:
        print(f"[{table}] {len(report.conflicts)} record(s) need manual review:")
        for conflict in report.conflicts:
            print(f"  {conflict['key']}: {'; '.join(conflict['conflicts'])}")


async def run(tables: list[str], dry_run: bool) -> int:
    """
    Migrate the requested tables.

    Returns:
        Process exit code: 0 when clean, 2 when conflicts were reported
    """
    migrator = LegacyMigrator(dry_run=dry_run)
    has_conflicts = False
    if "events" in tables:
        report = await migrator.migrate_events()
        print_report("events", report, dry_run)
        has_conflicts = has_conflicts or bool(report.conflicts)
    if "viewers" in tables:
        report = await migrator.migrate_viewers()
        print_report("viewers", report, dry_run)
        has_conflicts = has_conflicts or bool(report.conflicts)
    return 2 if has_conflicts else 0


def main() -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Rewrite legacy GoLive records to the current schema",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--table",
        choices=["events", "viewers", "all"],
        default="all",
        help="Table to migrate (default: all)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing",
    )
    args = parser.parse_args()

    tables = ["events", "viewers"] if args.table == "all" else [args.table]
    sys.exit(asyncio.run(run(tables, args.dry_run)))


if __name__ == "__main__":
    main()
