"""
Domain models for clinic placement.

These models describe submissions, slots, lanes, waitlists and placements.
They know nothing about FastAPI or the document store; repositories in the
infrastructure layer translate them to and from stored documents.

Identity is expressed with small frozen key types (SwimmerKey, SlotKey,
PlacementKey) instead of concatenated strings. Two keys are the same key
when their normalized parts are equal, which is exactly what dataclass
equality and hashing give us.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Iterator, Optional
from uuid import UUID, uuid5

DEFAULT_LANE_CAPACITY = 3

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_UNSAFE_ID_CHARS = re.compile(r"[^a-z0-9_\-:@.]")

# Fixed namespace so the same placement key always maps to the same document.
_PLACEMENT_NAMESPACE = UUID("6f1c2a8e-3d4b-5e6f-9a0b-1c2d3e4f5a6b")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    """Milliseconds since the Unix epoch, computed without float rounding."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(milliseconds=1)


def _fold(value: str) -> str:
    """Collapse whitespace and lower-case, for identity comparisons."""
    return " ".join((value or "").split()).lower()


class SwimmerLevel(Enum):
    """Skill tiers offered by the swim school."""
    BRONZE_BEGINNER = "Bronze Beginner"
    BRONZE_PERFORMANCE = "Bronze Performance"
    SILVER_BEGINNER = "Silver Beginner"
    SILVER_PERFORMANCE = "Silver Performance"
    GOLD_BEGINNER = "Gold Beginner"
    GOLD_PERFORMANCE = "Gold Performance"
    PLATINUM_BEGINNER = "Platinum Beginner"
    PLATINUM_PERFORMANCE = "Platinum Performance"


SWIMMER_LEVELS = tuple(level.value for level in SwimmerLevel)


class ActivityType(Enum):
    CLINIC = "clinic"
    CAMP = "camp"
    POP_UP = "pop-up"


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SwimmerKey:
    """
    Natural identity of a swimmer within a season.

    Parts are normalized on construction, so "Amy Chen" and " amy  chen "
    from the same parent email are the same swimmer.
    """
    season: str
    parent_email: str
    swimmer_name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "season", _fold(self.season))
        object.__setattr__(self, "parent_email", _fold(self.parent_email))
        object.__setattr__(self, "swimmer_name", _fold(self.swimmer_name))

    @property
    def document_id(self) -> str:
        """Storage id for the swimmer's submission, stable across resubmits."""
        raw = "__".join((self.season, self.parent_email, self.swimmer_name))
        return _UNSAFE_ID_CHARS.sub("_", raw)[:300]


@dataclass(frozen=True, order=True)
class SlotKey:
    """A bookable (location, slot label) pair."""
    location: str
    slot_label: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "location", (self.location or "").strip())
        object.__setattr__(self, "slot_label", (self.slot_label or "").strip())


@dataclass(frozen=True)
class PlacementKey:
    """Identity of one placement: a slot within an activity and season."""
    activity_id: str
    season: str
    location: str
    slot_label: str

    def __post_init__(self) -> None:
        for name in ("activity_id", "season", "location", "slot_label"):
            object.__setattr__(self, name, (getattr(self, name) or "").strip())

    @property
    def slot(self) -> SlotKey:
        return SlotKey(self.location, self.slot_label)

    @property
    def document_id(self) -> str:
        name = "\x1f".join((self.activity_id, self.season, self.location, self.slot_label))
        return str(uuid5(_PLACEMENT_NAMESPACE, name))


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------

@dataclass
class Preference:
    """Ranked slot labels chosen at one location."""
    location: str
    selections: list[str] = field(default_factory=list)


@dataclass
class Submission:
    """
    One swimmer's preference entry for a season.

    Read-only input to aggregation and recommendation. The allocation code
    never mutates a submission.
    """
    id: str
    season: str
    swimmer_name: str
    parent_email: str
    level: str = "unknown"  # SwimmerLevel value, or a legacy free-form string
    parent_phone: str = ""
    preferences: list[Preference] = field(default_factory=list)
    submitted_at: Optional[datetime] = None
    swimmer_id: Optional[str] = None

    @property
    def key(self) -> SwimmerKey:
        return SwimmerKey(self.season, self.parent_email, self.swimmer_name)

    def selected_slots(self) -> Iterator[SlotKey]:
        """Every selected slot, in preference order."""
        for preference in self.preferences:
            for label in preference.selections:
                yield SlotKey(preference.location, label)

    def submitted_at_ms(self, now: Optional[datetime] = None) -> int:
        """Submission time in epoch milliseconds; missing times count as now."""
        moment = self.submitted_at or now or utc_now()
        return to_epoch_ms(moment)


# ---------------------------------------------------------------------------
# Placements
# ---------------------------------------------------------------------------

@dataclass
class PlacementSwimmer:
    """A swimmer assigned to a lane."""
    submission_id: str
    swimmer_name: str = ""
    level: str = ""
    parent_email: str = ""
    parent_phone: str = ""
    submitted_at: Optional[datetime] = None
    placed_at: Optional[datetime] = None


@dataclass
class WaitlistEntry:
    """A swimmer queued for a full slot."""
    submission_id: str
    swimmer_name: str = ""
    level: str = ""
    parent_email: str = ""
    parent_phone: str = ""
    submitted_at: Optional[datetime] = None
    waitlist_order: int = 0


@dataclass
class Lane:
    """A capacity-bounded group within a placement, e.g. one swim lane."""
    lane_number: int
    capacity: int = DEFAULT_LANE_CAPACITY
    swimmers: list[PlacementSwimmer] = field(default_factory=list)

    @property
    def occupancy(self) -> int:
        return len(self.swimmers)

    @property
    def available(self) -> int:
        return self.capacity - self.occupancy

    def has_submission(self, submission_id: str) -> bool:
        return any(s.submission_id == submission_id for s in self.swimmers)


@dataclass
class Placement:
    """
    Assignment record for one slot: its lanes and its waitlist.

    The version increases by one on every write and is what concurrent
    admin edits are checked against.
    """
    key: PlacementKey
    lanes: list[Lane] = field(default_factory=list)
    waitlist: list[WaitlistEntry] = field(default_factory=list)
    id: Optional[str] = None
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.id is None:
            self.id = self.key.document_id

    @property
    def slot(self) -> SlotKey:
        return self.key.slot

    @property
    def total_capacity(self) -> int:
        return sum(lane.capacity for lane in self.lanes)

    @property
    def used_capacity(self) -> int:
        return sum(lane.occupancy for lane in self.lanes)

    @property
    def available(self) -> int:
        return self.total_capacity - self.used_capacity

    @property
    def waitlist_count(self) -> int:
        return len(self.waitlist)

    @property
    def assigned_submission_ids(self) -> set[str]:
        return {s.submission_id for lane in self.lanes for s in lane.swimmers}

    def contains_in_lanes(self, submission_id: str) -> bool:
        return any(lane.has_submission(submission_id) for lane in self.lanes)


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------

@dataclass
class ActivitySlot:
    label: str
    date: Optional[str] = None  # YYYY-MM-DD when known
    time: Optional[str] = None


@dataclass
class ActivityLocation:
    name: str
    slots: list[ActivitySlot] = field(default_factory=list)


@dataclass
class Activity:
    """A clinic, camp or pop-up configuration for one season."""
    season: str
    title: str
    id: Optional[str] = None
    type: ActivityType = ActivityType.CLINIC
    description: str = ""
    locations: list[ActivityLocation] = field(default_factory=list)
    levels: list[str] = field(default_factory=list)
    active: bool = True
    is_full: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    def slot_keys(self) -> set[SlotKey]:
        return {
            SlotKey(location.name, slot.label)
            for location in self.locations
            for slot in location.slots
        }

    def is_expired(self, today: date) -> bool:
        """True once the latest dated slot is in the past."""
        latest: Optional[date] = None
        for location in self.locations:
            for slot in location.slots:
                if not slot.date:
                    continue
                try:
                    slot_date = date.fromisoformat(slot.date)
                except ValueError:
                    continue
                if latest is None or slot_date > latest:
                    latest = slot_date
        if latest is None:
            return False
        return latest < today


@dataclass
class ActivityUpdate:
    """Fields to change on an activity. None leaves a field as it is."""
    season: Optional[str] = None
    title: Optional[str] = None
    type: Optional[ActivityType] = None
    description: Optional[str] = None
    locations: Optional[list[ActivityLocation]] = None
    levels: Optional[list[str]] = None
    active: Optional[bool] = None
    is_full: Optional[bool] = None


# ---------------------------------------------------------------------------
# Recommendations (derived, never stored)
# ---------------------------------------------------------------------------

@dataclass
class SlotRecommendation:
    location: str
    slot_label: str
    reason: str
    priority: int  # lower is recommended sooner
    available: int
    waitlist_count: int
    needs_configuration: bool = False


@dataclass
class Recommendation:
    submission_id: str
    swimmer_name: str
    level: str
    parent_email: str
    parent_phone: str
    submitted_at: int  # epoch milliseconds
    recommended_slots: list[SlotRecommendation] = field(default_factory=list)
