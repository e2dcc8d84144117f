"""
Preference aggregation.

Flattens submissions into one row per selected slot so admins can see who
asked for what, and tallies submissions by skill level. Aggregation does
not rank anything; ranking is the recommendation engine's job.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .models import Submission, SlotKey, SwimmerKey

_DATE_TOKEN = re.compile(r"([A-Za-z]{3}\s+\d{1,2})")


def extract_date_key(label: str) -> str:
    """
    First "Mon DD" token in a slot label, used to group slots by day.

    Labels without such a token are their own date key.
    """
    match = _DATE_TOKEN.search(label)
    return match.group(1) if match else label


@dataclass
class AggregateSwimmer:
    swimmer_name: str
    parent_email: str
    parent_phone: str
    level: str


@dataclass
class AggregateRow:
    location: str
    label: str
    date_key: str
    swimmers: list[AggregateSwimmer] = field(default_factory=list)


@dataclass
class AggregateResult:
    rows: list[AggregateRow] = field(default_factory=list)
    by_level: dict[str, int] = field(default_factory=dict)
    unique_swimmer_count: int = 0


def aggregate_submissions(
    submissions: Iterable[Submission],
    slots: Optional[set[SlotKey]] = None,
) -> AggregateResult:
    """
    Group submissions by selected slot.

    Args:
        submissions: Submissions to aggregate (typically one season's).
        slots: When given, only these slots produce rows. The level tally
            still counts every submission.

    A swimmer who picked the same slot in more than one submission shows up
    once in that slot's row. Submissions with no preferences add nothing to
    the rows but are still counted by level.
    """
    rows: dict[SlotKey, AggregateRow] = {}
    seen_in_row: dict[SlotKey, set[SwimmerKey]] = {}
    by_level: Counter[str] = Counter()
    swimmers_seen: set[SwimmerKey] = set()

    for submission in submissions:
        by_level[submission.level or "unknown"] += 1
        swimmer = submission.key

        for slot in submission.selected_slots():
            if slots is not None and slot not in slots:
                continue

            row = rows.get(slot)
            if row is None:
                row = AggregateRow(
                    location=slot.location,
                    label=slot.slot_label,
                    date_key=extract_date_key(slot.slot_label),
                )
                rows[slot] = row
                seen_in_row[slot] = set()

            if swimmer in seen_in_row[slot]:
                continue
            seen_in_row[slot].add(swimmer)
            swimmers_seen.add(swimmer)
            row.swimmers.append(AggregateSwimmer(
                swimmer_name=submission.swimmer_name,
                parent_email=submission.parent_email,
                parent_phone=submission.parent_phone or "",
                level=submission.level,
            ))

    return AggregateResult(
        rows=[rows[slot] for slot in sorted(rows)],
        by_level=dict(by_level),
        unique_swimmer_count=len(swimmers_seen),
    )
