"""
Placement validation.

A placement is checked as a whole before anything is written, so a
rejected edit never leaves a half-applied lane layout behind.
"""

from ..errors import ValidationError
from .models import Lane, PlacementKey, WaitlistEntry


def validate_key(key: PlacementKey) -> None:
    for name in ("activity_id", "season", "location", "slot_label"):
        if not getattr(key, name):
            raise ValidationError(name, "is required")


def validate_assignment(lanes: list[Lane], waitlist: list[WaitlistEntry]) -> None:
    """
    Enforce the lane and waitlist invariants.

    - lane numbers are positive and unique
    - capacities are positive and never exceeded
    - a submission sits in at most one lane
    - a submission is either in a lane or on the waitlist, never both
    - a submission is on the waitlist at most once

    Raises:
        ValidationError: naming the first offending lane or entry.
    """
    lane_numbers: set[int] = set()
    placed: dict[str, int] = {}

    for lane in lanes:
        field_name = f"lanes[{lane.lane_number}]"

        if lane.lane_number < 1:
            raise ValidationError(field_name, "lane number must be positive")
        if lane.lane_number in lane_numbers:
            raise ValidationError(field_name, "duplicate lane number")
        lane_numbers.add(lane.lane_number)

        if lane.capacity < 1:
            raise ValidationError(field_name, "capacity must be positive")
        if lane.occupancy > lane.capacity:
            raise ValidationError(
                field_name,
                f"{lane.occupancy} swimmers exceed capacity {lane.capacity}",
            )

        for swimmer in lane.swimmers:
            if not swimmer.submission_id:
                raise ValidationError(field_name, "swimmer is missing submission_id")
            if swimmer.submission_id in placed:
                raise ValidationError(
                    field_name,
                    f"submission {swimmer.submission_id} is already in lane "
                    f"{placed[swimmer.submission_id]}",
                )
            placed[swimmer.submission_id] = lane.lane_number

    waitlisted: set[str] = set()
    for position, entry in enumerate(waitlist):
        field_name = f"waitlist[{position}]"
        if not entry.submission_id:
            raise ValidationError(field_name, "entry is missing submission_id")
        if entry.submission_id in placed:
            raise ValidationError(
                field_name,
                f"submission {entry.submission_id} is also in lane "
                f"{placed[entry.submission_id]}",
            )
        if entry.submission_id in waitlisted:
            raise ValidationError(
                field_name,
                f"submission {entry.submission_id} is waitlisted twice",
            )
        waitlisted.add(entry.submission_id)


def renumber_waitlist(waitlist: list[WaitlistEntry]) -> list[WaitlistEntry]:
    """Dense 0-based waitlist_order following list order."""
    for order, entry in enumerate(waitlist):
        entry.waitlist_order = order
    return waitlist
