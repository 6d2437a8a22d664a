"""Print the team trend for a daily-summary export (CSV/JSON)."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from productivity_tracker.adapters import csv_adapter, json_adapter
from productivity_tracker.aggregation import team_trend

logger = logging.getLogger(__name__)


def _load_summaries(path: Path):
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(str(path), "daily_summaries")
    if suffix == ".json":
        return json_adapter.parse(str(path), "daily_summaries")
    raise ValueError("Unsupported input format, expected .csv or .json")


def main() -> None:
    parser = argparse.ArgumentParser(description="Report per-date team productivity and utilization")
    parser.add_argument("--data", required=True, help="Path to CSV/JSON daily summaries file")
    parser.add_argument("--agent", help="Only include rows for this user_id")
    parser.add_argument("--output", default="outputs/team_trend.json", help="Where to write the JSON report")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    summaries = _load_summaries(Path(args.data))
    if args.agent:
        summaries = [s for s in summaries if s.user_id == args.agent]
    logger.info("Loaded %d daily summaries from %s", len(summaries), args.data)

    report = {
        "n_summaries": len(summaries),
        "trend": [{**asdict(trend), "date": trend.date.isoformat()} for trend in team_trend(summaries)],
    }

    print(json.dumps(report, indent=2))

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    print(f"Saved team trend report to {out_path}")


if __name__ == "__main__":
    main()
