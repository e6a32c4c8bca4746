"""CSV export of the full history ledger."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable

from rankedwork.progression.schemas import HistoryEntry

EXPORT_FILENAME = "ranked_work_history.csv"
CSV_HEADERS = ["Date", "Day", "Start", "End", "Hours", "Tasks", "XP", "TimePerTask", "LPChange", "LPAfter"]


def entry_to_row(entry: HistoryEntry) -> list[object]:
    """One CSV row. Null LP columns (placement days) become empty cells."""
    return [
        entry.date,
        entry.weekday,
        entry.start_clock_time,
        entry.end_clock_time,
        entry.hours_worked,
        entry.tasks_completed,
        entry.xp,
        entry.hours_per_task,
        "" if entry.lp_change is None else entry.lp_change,
        "" if entry.lp_after is None else entry.lp_after,
    ]


def export_csv(entries: Iterable[HistoryEntry]) -> str:
    """Render entries, oldest first, under the standard header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(entry_to_row(entry) for entry in entries)
    return buffer.getvalue()
