"""
Activity endpoints.

Activities are the clinics, camps and pop-ups parents sign up for. The
sign-up form reads the active activity, the public listing and individual
activities without authentication; listing, creating, updating and
deleting them is for admins.
"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from ...core.placement.models import (
    Activity,
    ActivityLocation,
    ActivitySlot,
    ActivityType,
    ActivityUpdate,
    utc_now,
)
from ..dependencies import AdminUser, PlacementServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class SlotItem(BaseModel):
    label: str = Field(description="Slot label shown to parents, e.g. 'Dec 22 9:00-10:00'")
    date: Optional[str] = Field(None, description="Slot date, YYYY-MM-DD")
    time: Optional[str] = Field(None, description="Slot time range")


class LocationItem(BaseModel):
    name: str = Field(description="Location name")
    slots: list[SlotItem] = Field(default_factory=list)


class ActivityRequest(BaseModel):
    season: str = Field(default="", description="Season the activity runs in")
    title: str = Field(default="", description="Title shown to parents")
    type: ActivityType = Field(default=ActivityType.CLINIC, description="clinic, camp or pop-up")
    description: str = ""
    locations: list[LocationItem] = Field(default_factory=list)
    levels: list[str] = Field(default_factory=list, description="Levels the activity is open to")
    active: bool = True
    is_full: bool = False


class ActivityUpdateRequest(BaseModel):
    """Partial update. Omitted fields keep their stored value."""
    season: Optional[str] = None
    title: Optional[str] = None
    type: Optional[ActivityType] = None
    description: Optional[str] = None
    locations: Optional[list[LocationItem]] = None
    levels: Optional[list[str]] = None
    active: Optional[bool] = Field(None, description="False closes sign-up")
    is_full: Optional[bool] = Field(None, description="True shows the activity as full")


class ActivityResponse(BaseModel):
    id: str
    season: str
    title: str
    type: ActivityType
    description: str
    locations: list[LocationItem]
    levels: list[str]
    active: bool
    is_full: bool
    is_expired: bool = Field(default=False, description="Every dated slot is in the past")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @classmethod
    def from_activity(cls, activity: Activity, today: Optional[date] = None) -> "ActivityResponse":
        return cls(
            id=activity.id or "",
            season=activity.season,
            title=activity.title,
            type=activity.type,
            description=activity.description,
            locations=[
                LocationItem(
                    name=location.name,
                    slots=[SlotItem(label=s.label, date=s.date, time=s.time) for s in location.slots],
                )
                for location in activity.locations
            ],
            levels=list(activity.levels),
            active=activity.active,
            is_full=activity.is_full,
            is_expired=activity.is_expired(today or utc_now().date()),
            created_at=activity.created_at,
            updated_at=activity.updated_at,
            archived_at=activity.archived_at,
        )


class ActiveActivityResponse(BaseModel):
    activity: Optional[ActivityResponse] = Field(None, description="Null when nothing is open")


def _to_locations(items: list[LocationItem]) -> list[ActivityLocation]:
    return [
        ActivityLocation(
            name=location.name.strip(),
            slots=[ActivitySlot(label=s.label.strip(), date=s.date, time=s.time) for s in location.slots],
        )
        for location in items
    ]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/active",
    response_model=ActiveActivityResponse,
    status_code=status.HTTP_200_OK,
    summary="Current activity",
    description="The newest active activity whose dates have not all passed.",
)
def get_active_activity(service: PlacementServiceDep) -> ActiveActivityResponse:
    activity = service.get_active_activity()
    return ActiveActivityResponse(
        activity=ActivityResponse.from_activity(activity) if activity else None,
    )


@router.get(
    "/public",
    response_model=list[ActivityResponse],
    status_code=status.HTTP_200_OK,
    summary="Public activity listing",
    description="Every activity, newest first, flagged when expired. Expired activities still marked active are archived.",
)
def list_public_activities(service: PlacementServiceDep) -> list[ActivityResponse]:
    now = utc_now()
    activities = service.list_public_activities(now=now)
    return [ActivityResponse.from_activity(a, today=now.date()) for a in activities]


@router.get(
    "/{activity_id}",
    response_model=ActivityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get an activity",
)
def get_activity(activity_id: str, service: PlacementServiceDep) -> ActivityResponse:
    return ActivityResponse.from_activity(service.get_activity(activity_id))


@router.get(
    "",
    response_model=list[ActivityResponse],
    status_code=status.HTTP_200_OK,
    summary="List activities",
    description="Activities, newest first.",
)
def list_activities(
    admin: AdminUser,
    service: PlacementServiceDep,
    season: Optional[str] = Query(None, description="Only this season"),
    active_only: bool = Query(False, description="Only active activities"),
) -> list[ActivityResponse]:
    activities = service.list_activities(season=season, active_only=active_only)
    return [ActivityResponse.from_activity(a) for a in activities]


@router.post(
    "",
    response_model=ActivityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an activity",
)
def create_activity(
    request: ActivityRequest,
    admin: AdminUser,
    service: PlacementServiceDep,
) -> ActivityResponse:
    activity = Activity(
        season=request.season,
        title=request.title,
        type=request.type,
        description=request.description,
        locations=_to_locations(request.locations),
        levels=list(request.levels),
        active=request.active,
        is_full=request.is_full,
    )

    created = service.create_activity(activity)
    logger.info("Activity created via API", extra={"admin": admin.email, "activity_id": created.id})
    return ActivityResponse.from_activity(created)


@router.put(
    "/{activity_id}",
    response_model=ActivityResponse,
    status_code=status.HTTP_200_OK,
    summary="Update an activity",
    description="Change only the fields present in the body. Unknown ids return 404.",
)
def update_activity(
    activity_id: str,
    request: ActivityUpdateRequest,
    admin: AdminUser,
    service: PlacementServiceDep,
) -> ActivityResponse:
    changes = ActivityUpdate(
        season=request.season,
        title=request.title,
        type=request.type,
        description=request.description,
        locations=_to_locations(request.locations) if request.locations is not None else None,
        levels=list(request.levels) if request.levels is not None else None,
        active=request.active,
        is_full=request.is_full,
    )

    updated = service.update_activity(activity_id, changes)
    logger.info("Activity updated via API", extra={"admin": admin.email, "activity_id": activity_id})
    return ActivityResponse.from_activity(updated)


@router.delete(
    "/{activity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an activity",
    description="Remove an activity. Its placements are left alone. Unknown ids return 404.",
)
def delete_activity(
    activity_id: str,
    admin: AdminUser,
    service: PlacementServiceDep,
) -> None:
    logger.info("Deleting activity", extra={"admin": admin.email, "activity_id": activity_id})
    service.delete_activity(activity_id)
