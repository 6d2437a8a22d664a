"""Demo script for productivity-tracker."""

import sys
from collections import defaultdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from productivity_tracker.adapters.csv_adapter import parse
from productivity_tracker.aggregation import summarize_day, team_trend


def main() -> None:
    task_logs = parse("examples/sample_task_logs.csv", "task_logs")
    diverted = parse("examples/sample_diverted_tasks.csv", "diverted_tasks")

    by_user_day = defaultdict(lambda: ([], []))
    for log in task_logs:
        by_user_day[(log.user_id, log.completed_at.date())][0].append(log)
    for log in diverted:
        by_user_day[(log.user_id, log.completed_at.date())][1].append(log)

    summaries = [summarize_day(user, day, core, other) for (user, day), (core, other) in sorted(by_user_day.items())]
    for summary in summaries:
        print("Summary:", summary)
    print("Team trend:", team_trend(summaries))
    print("Reported trend:", team_trend(parse("examples/sample_summaries.csv", "daily_summaries")))


if __name__ == "__main__":
    main()
