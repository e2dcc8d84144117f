"""
Submission intake endpoint.

Public: parents submit their swimmer's slot preferences here without an
account. Submitting again for the same swimmer (same season, parent email
and swimmer name) replaces the earlier preferences.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from ...core.placement.intake import SubmissionForm
from ..dependencies import PlacementServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class PreferenceGroup(BaseModel):
    """Slots chosen at one location, most wanted first."""
    location: str = Field(default="", description="Pool or site name")
    selections: list[Any] = Field(default_factory=list, description="Slot labels at this location")


class SubmissionRequest(BaseModel):
    """A parent's preference form."""
    parent_email: Optional[str] = Field(None, description="Parent contact email")
    parent_phone: Optional[str] = Field(None, description="Parent phone, any formatting")
    swimmer_name: Optional[str] = Field(None, description="Swimmer's full name")
    level: Optional[str] = Field(None, description="Swimmer level, e.g. 'Silver Beginner'")
    season: Optional[str] = Field(None, description="Season; the current season when omitted")
    preferences: list[PreferenceGroup] = Field(default_factory=list, description="Preferences by location")
    swimmer_id: Optional[str] = Field(None, description="Swim school's own swimmer id, if known")
    website: Optional[str] = Field(None, description="Leave empty")


class SubmissionResponse(BaseModel):
    ok: bool = Field(description="Always true when the submission was accepted")
    submission_id: Optional[str] = Field(None, description="Stored submission id")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=status.HTTP_200_OK,
    summary="Submit slot preferences",
    description="Store a swimmer's clinic slot preferences. No authentication required.",
)
def create_submission(
    request: SubmissionRequest,
    service: PlacementServiceDep,
) -> SubmissionResponse:
    form = SubmissionForm(
        parent_email=request.parent_email,
        parent_phone=request.parent_phone,
        swimmer_name=request.swimmer_name,
        level=request.level,
        season=request.season,
        preferences=[group.model_dump() for group in request.preferences],
        swimmer_id=request.swimmer_id,
        website=request.website,
    )

    submission = service.submit(form)

    # Honeypot hits get the same answer as real submissions.
    return SubmissionResponse(ok=True, submission_id=submission.id if submission else None)
