"""
Run a mass import job from a JSON file.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from app.services.mass_import_orchestrator import get_mass_import_orchestrator
from app.validators import ImportValidationError


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a duplicate-aware mass import job.")
    parser.add_argument("job_file", type=Path, help="Path to the JSON job envelope.")
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Check duplicates and report without writing.",
    )
    parser.add_argument("--log-level", dest="log_level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        payload = json.loads(args.job_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Cannot read job file: {exc}", file=sys.stderr)
        return 2

    orchestrator = get_mass_import_orchestrator()
    try:
        result = orchestrator.run_payload(payload, dry_run=args.dry_run)
    except ImportValidationError as exc:
        print(json.dumps(exc.to_dict(), indent=2), file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.summary.total_failed == 0 else 3


if __name__ == "__main__":
    raise SystemExit(main())
