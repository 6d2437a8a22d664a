"""CSV adapter for exported tracker records."""

from __future__ import annotations

import csv

from productivity_tracker.adapters.records import build_record


def parse(file_path: str, kind: str) -> list:
    """Parse a CSV export of ``kind`` records (``task_logs``, ``daily_summaries``, ...)."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        records = []
        for row_number, row in enumerate(reader, start=2):
            records.append(build_record(kind, row, f"Row {row_number}"))
        return records
