#!/usr/bin/env python3
"""
Seed the exercise catalog through the admin API.

Reads a JSON file shaped either as ``{"data": [...]}`` or as a bare list of
exercises and POSTs each one to ``/admin/exercises``. Exercises whose name
already exists come back 409 and are counted separately from failures.

Usage:
    python scripts/populate_exercises.py --file exercises.json \
        [--url http://localhost:8000] [--user admin] [--password secret]

Exit status is 1 when any upload failed (conflicts do not count).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

logger = logging.getLogger("populate_exercises")


@dataclass
class UploadReport:
    created: int = 0
    conflict: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.created + self.conflict + self.failed


def load_exercises(path: Path) -> list[dict[str, Any]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("data", [])
    if not isinstance(payload, list):
        raise ValueError(f"{path} must hold a list of exercises or a {{'data': [...]}} object")
    return payload


def upload(client: httpx.Client, exercises: list[dict[str, Any]], delay: float = 0.0) -> UploadReport:
    report = UploadReport()
    for i, exercise in enumerate(exercises, start=1):
        name = exercise.get("name", "<unnamed>")
        try:
            resp = client.post("/admin/exercises", json=exercise)
        except httpx.HTTPError as exc:
            logger.error("[%d/%d] %s: request failed: %s", i, len(exercises), name, exc)
            report.failed += 1
            continue

        if resp.status_code == 201:
            logger.info("[%d/%d] created %s", i, len(exercises), name)
            report.created += 1
        elif resp.status_code == 409:
            logger.info("[%d/%d] %s already exists", i, len(exercises), name)
            report.conflict += 1
        else:
            logger.error("[%d/%d] %s: status %d: %s", i, len(exercises), name, resp.status_code, resp.text)
            report.failed += 1

        if delay:
            time.sleep(delay)
    return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Upload exercises to the catalog")
    parser.add_argument("--file", type=Path, default=Path("exercises.json"), help="JSON file to upload")
    parser.add_argument("--url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--user", default="admin", help="Admin username")
    parser.add_argument("--password", default="admin", help="Admin password")
    parser.add_argument("--delay", type=float, default=0.1, help="Seconds to wait between uploads")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        exercises = load_exercises(args.file)
    except (OSError, ValueError) as exc:
        logger.error("Cannot read %s: %s", args.file, exc)
        return 1

    logger.info("Found %d exercises to upload", len(exercises))
    with httpx.Client(base_url=args.url, auth=(args.user, args.password), timeout=30.0) as client:
        report = upload(client, exercises, delay=args.delay)

    logger.info(
        "Total: %d  created: %d  conflict: %d  failed: %d",
        report.total,
        report.created,
        report.conflict,
        report.failed,
    )
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
