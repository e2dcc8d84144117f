"""
Clinic placement logic.

Contains the domain models, submission intake, preference aggregation,
placement validation, the recommendation engine and the service that ties
them together.
"""

from .aggregator import AggregateResult, AggregateRow, AggregateSwimmer, aggregate_submissions
from .intake import SubmissionForm, build_submission
from .models import (
    Activity,
    ActivityLocation,
    ActivitySlot,
    ActivityType,
    ActivityUpdate,
    Lane,
    Placement,
    PlacementKey,
    PlacementSwimmer,
    Preference,
    Recommendation,
    SlotKey,
    SlotRecommendation,
    Submission,
    SwimmerKey,
    SwimmerLevel,
    WaitlistEntry,
)
from .recommendations import recommend
from .service import ClinicPlacementService

__all__ = [
    "Activity",
    "ActivityLocation",
    "ActivitySlot",
    "ActivityType",
    "ActivityUpdate",
    "AggregateResult",
    "AggregateRow",
    "AggregateSwimmer",
    "ClinicPlacementService",
    "Lane",
    "Placement",
    "PlacementKey",
    "PlacementSwimmer",
    "Preference",
    "Recommendation",
    "SlotKey",
    "SlotRecommendation",
    "Submission",
    "SubmissionForm",
    "SwimmerKey",
    "SwimmerLevel",
    "WaitlistEntry",
    "aggregate_submissions",
    "build_submission",
    "recommend",
]
