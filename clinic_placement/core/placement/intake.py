"""
Submission intake.

Parents submit a form; this module turns the raw form into a normalized
Submission or rejects it. Normalization happens before validation so that
a padded email or a phone typed with dashes is accepted.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..errors import ValidationError
from .models import SWIMMER_LEVELS, Preference, Submission, SwimmerKey

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_PREFERENCE_GROUPS = 100
MAX_SELECTIONS_PER_GROUP = 200


def clip(value: Any, limit: int = 200) -> str:
    """Trimmed string, cut to limit characters. None becomes empty."""
    if value is None:
        return ""
    return str(value).strip()[:limit]


def digits_only(value: Any) -> str:
    return re.sub(r"\D", "", "" if value is None else str(value))


@dataclass
class SubmissionForm:
    """The submission payload as the parent sent it."""
    parent_email: Optional[str] = None
    parent_phone: Optional[str] = None
    swimmer_name: Optional[str] = None
    level: Optional[str] = None
    season: Optional[str] = None
    preferences: list[dict[str, Any]] = field(default_factory=list)
    swimmer_id: Optional[str] = None
    website: Optional[str] = None  # honeypot, real parents leave it empty

    @property
    def is_spam(self) -> bool:
        return bool(self.website)


def _clean_preferences(raw: list[dict[str, Any]]) -> list[Preference]:
    preferences = []
    for group in (raw or [])[:MAX_PREFERENCE_GROUPS]:
        if not isinstance(group, dict):
            continue
        selections = group.get("selections") or []
        if not isinstance(selections, list):
            selections = []
        preferences.append(Preference(
            location=clip(group.get("location"), 120),
            selections=[clip(s, 160) for s in selections[:MAX_SELECTIONS_PER_GROUP]],
        ))
    return preferences


def build_submission(form: SubmissionForm, default_season: str, now: datetime) -> Submission:
    """
    Normalize and validate a submission form.

    The returned submission's id is derived from the swimmer's identity, so
    submitting again for the same swimmer edits the earlier entry.

    Raises:
        ValidationError: on the first invalid field.
    """
    parent_email = clip(form.parent_email)
    parent_phone = digits_only(form.parent_phone)
    swimmer_name = clip(form.swimmer_name, 120)
    level = clip(form.level, 80)
    season = clip(form.season, 80) or default_season
    preferences = _clean_preferences(form.preferences)

    if not EMAIL_PATTERN.match(parent_email):
        raise ValidationError("parent_email", "invalid email")
    if not 10 <= len(parent_phone) <= 15:
        raise ValidationError("parent_phone", "must contain 10 to 15 digits")
    if level not in SWIMMER_LEVELS:
        raise ValidationError("level", f"unknown level {level!r}")
    if not swimmer_name:
        raise ValidationError("swimmer_name", "is required")
    if not preferences:
        raise ValidationError("preferences", "at least one location is required")

    key = SwimmerKey(season, parent_email, swimmer_name)
    return Submission(
        id=key.document_id,
        season=season,
        swimmer_name=swimmer_name,
        parent_email=parent_email,
        parent_phone=parent_phone,
        level=level,
        preferences=preferences,
        submitted_at=now,
        swimmer_id=clip(form.swimmer_id, 120) or None,
    )


def render_notification(submission: Submission) -> tuple[str, str]:
    """Subject and plain-text body for the new-submission email."""
    lines = [
        "New activity submission",
        "",
        f"Parent email: {submission.parent_email}",
        f"Parent phone: {submission.parent_phone}",
        f"Swimmer: {submission.swimmer_name}",
        f"Level: {submission.level}",
        f"Season: {submission.season}",
        "",
        "Preferences:",
    ]
    for preference in submission.preferences:
        lines.append(f"  {preference.location}: {', '.join(preference.selections)}")
    return "New Activity Submission", "\n".join(lines)
