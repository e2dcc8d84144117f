"""
Placement recommendations.

For every submission and every slot it selected, decide whether the slot
still has room and give it a sortable priority. The result is a decision
aid for an admin, not an allocation: nothing here writes anything, and two
swimmers may both be told the last open spot is theirs.

Priority (lower is recommended sooner):

- open capacity: the submission time in epoch milliseconds, i.e. pure
  first-come-first-served
- full: WAITLIST_BASE + waitlist length * WAITLIST_STEP + submission time,
  so for one swimmer every full slot sorts after every open one, and among
  full slots the shorter waitlist wins

Slots that have no placement yet are scored as one empty lane of default
capacity and flagged with needs_configuration so admins know to set real
lanes up.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .models import (
    DEFAULT_LANE_CAPACITY,
    Placement,
    Recommendation,
    SlotKey,
    SlotRecommendation,
    Submission,
    utc_now,
)

logger = logging.getLogger(__name__)

WAITLIST_BASE = 1_000_000
WAITLIST_STEP = 1_000
MAX_RECOMMENDED_SLOTS = 10


@dataclass(frozen=True)
class SlotOccupancy:
    """Capacity snapshot of one slot as seen by the engine."""
    total_capacity: int
    used_capacity: int
    waitlist_count: int
    configured: bool

    @property
    def available(self) -> int:
        return self.total_capacity - self.used_capacity

    @classmethod
    def of(cls, placement: Optional[Placement], default_capacity: int) -> "SlotOccupancy":
        if placement is None:
            return cls(
                total_capacity=default_capacity,
                used_capacity=0,
                waitlist_count=0,
                configured=False,
            )
        return cls(
            total_capacity=placement.total_capacity,
            used_capacity=placement.used_capacity,
            waitlist_count=placement.waitlist_count,
            configured=True,
        )


def slot_priority(occupancy: SlotOccupancy, submitted_at_ms: int) -> int:
    if occupancy.available > 0:
        return submitted_at_ms
    return WAITLIST_BASE + occupancy.waitlist_count * WAITLIST_STEP + submitted_at_ms


def slot_reason(occupancy: SlotOccupancy) -> str:
    available = occupancy.available
    if available > 0:
        noun = "spot" if available == 1 else "spots"
        return f"Available capacity ({available} {noun} open)"
    return f"Waitlist ({occupancy.waitlist_count + 1} in queue)"


def recommend_for_submission(
    submission: Submission,
    placements: dict[SlotKey, Placement],
    default_capacity: int = DEFAULT_LANE_CAPACITY,
    max_slots: int = MAX_RECOMMENDED_SLOTS,
    now: Optional[datetime] = None,
) -> Recommendation:
    """Rank one submission's still-unplaced slots."""
    submitted_at_ms = submission.submitted_at_ms(now)
    slots: list[SlotRecommendation] = []

    for slot in submission.selected_slots():
        placement = placements.get(slot)
        if placement is not None and placement.contains_in_lanes(submission.id):
            continue

        occupancy = SlotOccupancy.of(placement, default_capacity)
        slots.append(SlotRecommendation(
            location=slot.location,
            slot_label=slot.slot_label,
            reason=slot_reason(occupancy),
            priority=slot_priority(occupancy, submitted_at_ms),
            available=occupancy.available,
            waitlist_count=occupancy.waitlist_count,
            needs_configuration=not occupancy.configured,
        ))

    # sort() is stable, so equal priorities keep preference order
    slots.sort(key=lambda s: s.priority)

    return Recommendation(
        submission_id=submission.id,
        swimmer_name=submission.swimmer_name,
        level=submission.level,
        parent_email=submission.parent_email,
        parent_phone=submission.parent_phone or "",
        submitted_at=submitted_at_ms,
        recommended_slots=slots[:max_slots],
    )


def recommend(
    submissions: Iterable[Submission],
    placements: Iterable[Placement],
    default_capacity: int = DEFAULT_LANE_CAPACITY,
    max_slots: int = MAX_RECOMMENDED_SLOTS,
    now: Optional[datetime] = None,
) -> list[Recommendation]:
    """
    Recommendations for every submission, in arrival order.

    Every submission is returned, including ones with nothing to recommend,
    so applicants who need manual follow-up stay visible.
    """
    now = now or utc_now()
    by_slot: dict[SlotKey, Placement] = {}
    for placement in placements:
        if placement.slot in by_slot:
            logger.warning(
                "Multiple placements for one slot, keeping the first",
                extra={"location": placement.slot.location, "slot_label": placement.slot.slot_label},
            )
            continue
        by_slot[placement.slot] = placement

    recommendations = [
        recommend_for_submission(s, by_slot, default_capacity, max_slots, now)
        for s in submissions
    ]
    recommendations.sort(key=lambda r: r.submitted_at)
    return recommendations
