"""
Container health check for the mass import API.

Probes the HTTP health route and, with --database, the catalog database.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

import requests

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


def _http_ok(timeout: float) -> bool:
    port = os.getenv("PORT", "8000")
    path = os.getenv("HEALTHCHECK_PATH", "/health")
    try:
        response = requests.get(f"http://127.0.0.1:{port}{path}", timeout=timeout)
    except requests.RequestException:
        return False
    return response.ok


def _database_ok() -> bool:
    from db.session import check_database_connection

    try:
        check_database_connection()
    except Exception:  # noqa: BLE001
        return False
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Mass import API health check")
    parser.add_argument("--database", action="store_true", help="Also check the catalog database")
    parser.add_argument("--timeout", type=float, default=2.0)
    args = parser.parse_args()

    if not _http_ok(args.timeout):
        return 1
    if args.database and not _database_ok():
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
