#!/usr/bin/env python3
"""
Seed the labeler database with comments from a CSV file.

The CSV has a header row and one comment per row in the first column.
Comments already stored (same text) are skipped, so the script can be
rerun safely after adding rows.

Usage:
    python scripts/seed_comments.py comments.csv
    python scripts/seed_comments.py comments.csv --db /data/labels.db
    python scripts/seed_comments.py comments.csv --dry-run
"""

import argparse
import csv
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import app  # noqa: E402


def read_comments(csv_path: Path) -> list[str]:
    """Read comment texts from the first column, skipping the header row."""
    with open(csv_path, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    return [row[0].strip() for row in rows[1:] if row and row[0].strip()]


def main():
    parser = argparse.ArgumentParser(description="Seed comments for labeling")
    parser.add_argument("csv_path", type=Path, help="CSV file with a header row and one comment per row")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"Database path (default: LABELS_DB_PATH or {app.DB_PATH})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only count the comments in the file",
    )
    args = parser.parse_args()

    if not args.csv_path.exists():
        print(f"Error: {args.csv_path} not found")
        sys.exit(1)

    comments = read_comments(args.csv_path)
    print(f"Found {len(comments)} comments in {args.csv_path}")

    if args.dry_run:
        return

    if args.db:
        app.DB_PATH = args.db

    app.init_db()
    inserted, skipped = app.add_comments(comments)

    print(f"  Inserted: {inserted}")
    print(f"  Skipped (already exist): {skipped}")
    print("\nDone!")


if __name__ == "__main__":
    main()
