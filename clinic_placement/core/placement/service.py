"""
Clinic placement service.

Orchestrates the pieces: reads submissions and placements through store
protocols, runs validation, aggregation and recommendation, and writes
placements back. Like the rest of core/, it does not know about HTTP or
about which database sits behind the stores.

Placement writes are compare-and-swap on the placement version. An admin
editing a slot that someone else saved in the meantime gets a
ConflictError instead of silently overwriting the other edit.
"""

import logging
from datetime import datetime
from typing import Optional, Protocol

from ..errors import ConflictError, NotFoundError, ValidationError
from .aggregator import AggregateResult, aggregate_submissions
from .intake import SubmissionForm, build_submission, render_notification
from .models import (
    DEFAULT_LANE_CAPACITY,
    Activity,
    ActivityUpdate,
    Lane,
    Placement,
    PlacementKey,
    Recommendation,
    Submission,
    WaitlistEntry,
    utc_now,
)
from .recommendations import MAX_RECOMMENDED_SLOTS, recommend
from .validation import renumber_waitlist, validate_assignment, validate_key

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class SubmissionStore(Protocol):
    def list_submissions(self, season: Optional[str] = None) -> list[Submission]: ...
    def save_submission(self, submission: Submission) -> None: ...


class PlacementStore(Protocol):
    def get(self, key: PlacementKey) -> Optional[Placement]: ...
    def get_by_id(self, placement_id: str) -> Optional[Placement]: ...
    def list_placements(self, season: Optional[str] = None, activity_id: Optional[str] = None) -> list[Placement]: ...
    def write(self, placement: Placement, expected_version: int) -> bool: ...
    def delete(self, placement_id: str) -> None: ...


class ActivityStore(Protocol):
    def get(self, activity_id: str) -> Optional[Activity]: ...
    def list_activities(self, season: Optional[str] = None, active_only: bool = False) -> list[Activity]: ...
    def create(self, activity: Activity) -> Activity: ...
    def update(self, activity: Activity) -> Activity: ...
    def archive(self, activity_id: str, archived_at: datetime) -> None: ...
    def delete(self, activity_id: str) -> None: ...


class Notifier(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ClinicPlacementService:
    """
    Use cases for clinic placement.

    Stateless apart from its collaborators; a new instance per request is
    fine.
    """

    def __init__(
        self,
        submissions: SubmissionStore,
        placements: PlacementStore,
        activities: ActivityStore,
        notifier: Optional[Notifier] = None,
        notify_email: Optional[str] = None,
        default_season: str = "",
        default_capacity: int = DEFAULT_LANE_CAPACITY,
        max_recommended_slots: int = MAX_RECOMMENDED_SLOTS,
    ) -> None:
        self._submissions = submissions
        self._placements = placements
        self._activities = activities
        self._notifier = notifier
        self._notify_email = notify_email
        self._default_season = default_season
        self._default_capacity = default_capacity
        self._max_recommended_slots = max_recommended_slots

    # -- submissions --------------------------------------------------------

    def submit(self, form: SubmissionForm, now: Optional[datetime] = None) -> Optional[Submission]:
        """
        Store a parent's preferences.

        Returns None for honeypot submissions, which are accepted but not
        stored. Resubmitting for the same swimmer replaces the earlier entry.
        """
        if form.is_spam:
            logger.info("Ignoring honeypot submission")
            return None

        submission = build_submission(form, self._default_season, now or utc_now())
        self._submissions.save_submission(submission)

        logger.info(
            "Submission saved",
            extra={
                "submission_id": submission.id,
                "season": submission.season,
                "slot_count": sum(1 for _ in submission.selected_slots()),
            },
        )

        self._notify(submission)
        return submission

    def _notify(self, submission: Submission) -> None:
        if self._notifier is None or not self._notify_email:
            return
        subject, body = render_notification(submission)
        try:
            self._notifier.send(self._notify_email, subject, body)
        except Exception as e:
            # The submission is already stored; a lost email is not worth failing it.
            logger.error(
                "Submission notification failed",
                extra={"submission_id": submission.id, "error": str(e)},
            )

    # -- aggregation --------------------------------------------------------

    def aggregate(
        self,
        season: Optional[str] = None,
        activity_id: Optional[str] = None,
    ) -> AggregateResult:
        slots = None
        if activity_id:
            slots = self.get_activity(activity_id).slot_keys()

        submissions = self._submissions.list_submissions(season)
        result = aggregate_submissions(submissions, slots)

        logger.info(
            "Aggregated submissions",
            extra={
                "season": season,
                "activity_id": activity_id,
                "submissions": len(submissions),
                "rows": len(result.rows),
            },
        )
        return result

    # -- placements ---------------------------------------------------------

    def list_placements(
        self,
        season: Optional[str] = None,
        activity_id: Optional[str] = None,
    ) -> list[Placement]:
        return self._placements.list_placements(season=season, activity_id=activity_id)

    def get_placement(self, key: PlacementKey) -> Placement:
        placement = self._placements.get(key)
        if placement is None:
            raise NotFoundError("Placement", key.document_id)
        return placement

    def get_placement_by_id(self, placement_id: str) -> Placement:
        placement = self._placements.get_by_id(placement_id)
        if placement is None:
            raise NotFoundError("Placement", placement_id)
        return placement

    def upsert_placement(
        self,
        key: PlacementKey,
        lanes: list[Lane],
        waitlist: list[WaitlistEntry],
        expected_version: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Placement:
        """
        Create or replace the placement for a slot.

        The whole layout is validated first; nothing is written on failure.

        Args:
            expected_version: Version the caller last saw (0 for "not created
                yet"). When omitted, the version read here is used, so only a
                write racing this call can conflict.

        Raises:
            ValidationError: lane/waitlist invariants violated.
            ConflictError: the stored version moved on.
        """
        validate_key(key)
        validate_assignment(lanes, waitlist)
        if expected_version is not None and expected_version < 0:
            raise ValidationError("expected_version", "must not be negative")

        now = now or utc_now()
        current = self._placements.get(key)
        current_version = current.version if current else 0

        if expected_version is not None and expected_version != current_version:
            logger.warning(
                "Rejected stale placement write",
                extra={
                    "placement_id": key.document_id,
                    "expected_version": expected_version,
                    "current_version": current_version,
                },
            )
            raise ConflictError(expected_version, current_version)

        for lane in lanes:
            for swimmer in lane.swimmers:
                if swimmer.placed_at is None:
                    swimmer.placed_at = now

        placement = Placement(
            key=key,
            lanes=sorted(lanes, key=lambda lane: lane.lane_number),
            waitlist=renumber_waitlist(list(waitlist)),
            id=current.id if current else key.document_id,
            version=current_version + 1,
            created_at=current.created_at if current else now,
            updated_at=now,
        )

        if not self._placements.write(placement, expected_version=current_version):
            latest = self._placements.get(key)
            latest_version = latest.version if latest else 0
            logger.warning(
                "Placement changed during write",
                extra={
                    "placement_id": placement.id,
                    "expected_version": current_version,
                    "current_version": latest_version,
                },
            )
            raise ConflictError(current_version, latest_version)

        logger.info(
            "Placement saved",
            extra={
                "placement_id": placement.id,
                "version": placement.version,
                "lanes": len(placement.lanes),
                "assigned": placement.used_capacity,
                "waitlisted": placement.waitlist_count,
            },
        )
        return placement

    def delete_placement(self, placement_id: str) -> None:
        self.get_placement_by_id(placement_id)
        self._placements.delete(placement_id)
        logger.info("Placement deleted", extra={"placement_id": placement_id})

    # -- recommendations ----------------------------------------------------

    def recommendations(
        self,
        season: str,
        activity_id: str,
        now: Optional[datetime] = None,
    ) -> list[Recommendation]:
        """
        Ranked slot suggestions for every submission of the season.

        Results are advisory and may be stale as soon as they are returned.
        """
        if not season:
            raise ValidationError("season", "is required")
        if not activity_id:
            raise ValidationError("activity_id", "is required")

        self.get_activity(activity_id)

        submissions = self._submissions.list_submissions(season)
        placements = self._placements.list_placements(season=season, activity_id=activity_id)

        results = recommend(
            submissions,
            placements,
            default_capacity=self._default_capacity,
            max_slots=self._max_recommended_slots,
            now=now,
        )

        logger.info(
            "Computed recommendations",
            extra={
                "season": season,
                "activity_id": activity_id,
                "submissions": len(submissions),
                "placements": len(placements),
            },
        )
        return results

    # -- activities ---------------------------------------------------------

    def get_activity(self, activity_id: str) -> Activity:
        activity = self._activities.get(activity_id)
        if activity is None:
            raise NotFoundError("Activity", activity_id)
        return activity

    def list_activities(
        self,
        season: Optional[str] = None,
        active_only: bool = False,
    ) -> list[Activity]:
        return self._activities.list_activities(season=season, active_only=active_only)

    def get_active_activity(self, now: Optional[datetime] = None) -> Optional[Activity]:
        """Most recently created active activity that has not run out of dates."""
        today = (now or utc_now()).date()
        for activity in self._activities.list_activities(active_only=True):
            if not activity.is_expired(today):
                return activity
        return None

    def list_public_activities(self, now: Optional[datetime] = None) -> list[Activity]:
        """
        Every activity, newest first, for the public sign-up pages.

        Activities whose dates have all passed but are still marked active
        are archived on the way through. A failed archive is logged and the
        listing still reports the activity as inactive.
        """
        now = now or utc_now()
        today = now.date()
        activities = self._activities.list_activities()

        for activity in activities:
            if not activity.active or not activity.is_expired(today):
                continue
            try:
                self._activities.archive(activity.id, now)
                logger.info("Archived expired activity", extra={"activity_id": activity.id})
            except Exception as e:
                logger.error(
                    "Failed to archive expired activity",
                    extra={"activity_id": activity.id, "error": str(e)},
                )
            activity.active = False
            activity.archived_at = now

        return activities

    def create_activity(self, activity: Activity, now: Optional[datetime] = None) -> Activity:
        _clean_activity(activity)

        now = now or utc_now()
        activity.created_at = now
        activity.updated_at = now
        created = self._activities.create(activity)

        logger.info(
            "Activity created",
            extra={"activity_id": created.id, "season": created.season},
        )
        return created

    def update_activity(
        self,
        activity_id: str,
        changes: ActivityUpdate,
        now: Optional[datetime] = None,
    ) -> Activity:
        """
        Apply a partial update to an activity.

        Only fields set on `changes` are touched; the result must still be a
        valid activity. This is how admins close sign-up (active=False) or
        mark an activity full.

        Raises:
            NotFoundError: unknown activity id.
            ValidationError: the updated activity is missing a required field.
        """
        activity = self.get_activity(activity_id)

        for name in ("season", "title", "type", "description", "locations", "levels", "active", "is_full"):
            value = getattr(changes, name)
            if value is not None:
                setattr(activity, name, value)
        _clean_activity(activity)

        activity.updated_at = now or utc_now()
        updated = self._activities.update(activity)

        logger.info(
            "Activity updated",
            extra={"activity_id": activity_id, "active": updated.active, "is_full": updated.is_full},
        )
        return updated

    def delete_activity(self, activity_id: str) -> None:
        self.get_activity(activity_id)
        self._activities.delete(activity_id)
        logger.info("Activity deleted", extra={"activity_id": activity_id})


def _clean_activity(activity: Activity) -> None:
    activity.season = (activity.season or "").strip()
    activity.title = (activity.title or "").strip()
    activity.description = (activity.description or "").strip()

    if not activity.season:
        raise ValidationError("season", "is required")
    if not activity.title:
        raise ValidationError("title", "is required")
    if not activity.locations:
        raise ValidationError("locations", "at least one location is required")
