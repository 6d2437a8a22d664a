"""JSON adapter for exported tracker records."""

from __future__ import annotations

import json

from productivity_tracker.adapters.records import build_record


def parse(file_path: str, kind: str) -> list:
    """Parse a JSON array of ``kind`` records."""

    with open(file_path, encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError("Malformed JSON file") from exc

    if not isinstance(payload, list):
        raise ValueError("JSON root must be a list of records")

    records = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValueError(f"Item {index}: expected an object")
        records.append(build_record(kind, item, f"Item {index}"))
    return records
