"""
Unit tests for the clinic placement domain models.

These tests verify the core business logic without touching
external services (no API calls, no database, no file system).

Testing philosophy:
- Test behavior, not implementation
- Each test should have a clear "given/when/then" structure
- Use descriptive names that explain what we're testing
- Prefer real objects over mocks where practical
"""

from datetime import date, datetime, timedelta, timezone

from clinic_placement.core.placement.models import (
    EPOCH,
    SWIMMER_LEVELS,
    Activity,
    ActivityLocation,
    ActivitySlot,
    Lane,
    Placement,
    PlacementKey,
    PlacementSwimmer,
    Preference,
    SlotKey,
    Submission,
    SwimmerKey,
    SwimmerLevel,
    WaitlistEntry,
    to_epoch_ms,
)


# ---------------------------------------------------------------------------
# Key Tests
# ---------------------------------------------------------------------------

class TestSwimmerKey:
    """Tests for the swimmer identity key."""

    def test_case_and_whitespace_do_not_change_identity(self):
        """The same parent typing a name differently is still one swimmer."""
        a = SwimmerKey("Winter 2025", "Parent@Example.com", "Amy Chen")
        b = SwimmerKey(" winter 2025", "parent@example.com ", "amy   CHEN")
        assert a == b
        assert hash(a) == hash(b)

    def test_different_swimmers_same_parent_are_distinct(self):
        """Siblings share a parent email but are separate swimmers."""
        a = SwimmerKey("Winter 2025", "parent@example.com", "Amy Chen")
        b = SwimmerKey("Winter 2025", "parent@example.com", "Ben Chen")
        assert a != b

    def test_document_id_is_stable_and_safe(self):
        """Document ids only use characters safe for storage keys."""
        key = SwimmerKey("Winter Break 2025-26", "a.b@example.com", "Amy O'Neil")
        assert key.document_id == "winter_break_2025-26__a.b@example.com__amy_o_neil"
        assert key.document_id == SwimmerKey(
            "winter break 2025-26", "A.B@example.com", "amy o'neil"
        ).document_id

    def test_document_id_is_bounded(self):
        key = SwimmerKey("s", "p@example.com", "x" * 1000)
        assert len(key.document_id) == 300


class TestSlotKey:

    def test_strips_surrounding_whitespace(self):
        assert SlotKey(" PoolA ", "Mon 9AM ") == SlotKey("PoolA", "Mon 9AM")

    def test_orders_by_location_then_label(self):
        keys = [SlotKey("PoolB", "A"), SlotKey("PoolA", "Z"), SlotKey("PoolA", "B")]
        assert sorted(keys) == [
            SlotKey("PoolA", "B"),
            SlotKey("PoolA", "Z"),
            SlotKey("PoolB", "A"),
        ]


class TestPlacementKey:

    def test_document_id_is_deterministic(self):
        """The same slot of the same activity always maps to one document."""
        a = PlacementKey("act-1", "Winter", "PoolA", "Mon 9AM")
        b = PlacementKey("act-1", " Winter", "PoolA ", "Mon 9AM")
        assert a.document_id == b.document_id

    def test_document_id_differs_per_activity(self):
        a = PlacementKey("act-1", "Winter", "PoolA", "Mon 9AM")
        b = PlacementKey("act-2", "Winter", "PoolA", "Mon 9AM")
        assert a.document_id != b.document_id

    def test_slot_projection(self):
        key = PlacementKey("act-1", "Winter", "PoolA", "Mon 9AM")
        assert key.slot == SlotKey("PoolA", "Mon 9AM")


# ---------------------------------------------------------------------------
# Submission Tests
# ---------------------------------------------------------------------------

class TestSubmission:

    def test_selected_slots_follow_preference_order(self):
        submission = Submission(
            id="s1",
            season="Winter",
            swimmer_name="Amy",
            parent_email="p@example.com",
            preferences=[
                Preference("PoolA", ["Mon 9AM", "Tue 9AM"]),
                Preference("PoolB", ["Wed 5PM"]),
            ],
        )
        assert list(submission.selected_slots()) == [
            SlotKey("PoolA", "Mon 9AM"),
            SlotKey("PoolA", "Tue 9AM"),
            SlotKey("PoolB", "Wed 5PM"),
        ]

    def test_submitted_at_ms_is_exact(self):
        submission = Submission(
            id="s1", season="W", swimmer_name="Amy", parent_email="p@example.com",
            submitted_at=EPOCH + timedelta(milliseconds=123_456),
        )
        assert submission.submitted_at_ms() == 123_456

    def test_missing_submitted_at_counts_as_now(self):
        now = EPOCH + timedelta(seconds=5)
        submission = Submission(id="s1", season="W", swimmer_name="Amy", parent_email="p@example.com")
        assert submission.submitted_at_ms(now) == 5_000


def test_naive_datetimes_are_treated_as_utc():
    naive = datetime(2025, 1, 1, 12, 0, 0)
    aware = naive.replace(tzinfo=timezone.utc)
    assert to_epoch_ms(naive) == to_epoch_ms(aware)


class TestSwimmerLevel:

    def test_levels_run_bronze_to_platinum(self):
        assert SWIMMER_LEVELS[0] == SwimmerLevel.BRONZE_BEGINNER.value
        assert SWIMMER_LEVELS[-1] == "Platinum Performance"
        assert len(SWIMMER_LEVELS) == 8
        assert not SwimmerLevel.PLATINUM_PERFORMANCE.is_beginner


# ---------------------------------------------------------------------------
# Placement Tests
# ---------------------------------------------------------------------------

def _swimmer(submission_id: str) -> PlacementSwimmer:
    return PlacementSwimmer(submission_id=submission_id, swimmer_name=submission_id)


class TestPlacement:

    def test_capacity_totals(self):
        placement = Placement(
            key=PlacementKey("act-1", "Winter", "PoolA", "Mon 9AM"),
            lanes=[
                Lane(1, capacity=3, swimmers=[_swimmer("a"), _swimmer("b")]),
                Lane(2, capacity=2, swimmers=[_swimmer("c")]),
            ],
            waitlist=[WaitlistEntry("d"), WaitlistEntry("e")],
        )
        assert placement.total_capacity == 5
        assert placement.used_capacity == 3
        assert placement.available == 2
        assert placement.waitlist_count == 2
        assert placement.assigned_submission_ids == {"a", "b", "c"}

    def test_id_defaults_to_key_document_id(self):
        key = PlacementKey("act-1", "Winter", "PoolA", "Mon 9AM")
        assert Placement(key=key).id == key.document_id

    def test_contains_in_lanes_ignores_waitlist(self):
        placement = Placement(
            key=PlacementKey("act-1", "Winter", "PoolA", "Mon 9AM"),
            lanes=[Lane(1, swimmers=[_swimmer("a")])],
            waitlist=[WaitlistEntry("b")],
        )
        assert placement.contains_in_lanes("a")
        assert not placement.contains_in_lanes("b")


# ---------------------------------------------------------------------------
# Activity Tests
# ---------------------------------------------------------------------------

class TestActivity:

    def _activity(self, *dates):
        return Activity(
            season="Winter",
            title="Winter Clinic",
            locations=[
                ActivityLocation("PoolA", [ActivitySlot(label=f"Slot {d}", date=d) for d in dates]),
            ],
        )

    def test_slot_keys(self):
        activity = self._activity("2025-12-22", "2025-12-23")
        assert activity.slot_keys() == {
            SlotKey("PoolA", "Slot 2025-12-22"),
            SlotKey("PoolA", "Slot 2025-12-23"),
        }

    def test_expires_after_last_dated_slot(self):
        activity = self._activity("2025-12-22", "2025-12-30")
        assert not activity.is_expired(date(2025, 12, 30))
        assert activity.is_expired(date(2025, 12, 31))

    def test_undated_activity_never_expires(self):
        activity = self._activity(None)
        assert not activity.is_expired(date(2100, 1, 1))

    def test_unparseable_dates_are_ignored(self):
        activity = self._activity("Dec 22", "2025-12-22")
        assert activity.is_expired(date(2026, 1, 1))
