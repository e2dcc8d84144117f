"""
Placement endpoints (admin only).

A placement is the lane layout and waitlist for one slot of one activity.
Saving replaces the whole layout. Clients should send back the version
they loaded as expected_version; if someone else saved in between, the
save is rejected with 409 and the client reloads.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from ...core.placement.models import (
    DEFAULT_LANE_CAPACITY,
    Lane,
    Placement,
    PlacementKey,
    PlacementSwimmer,
    WaitlistEntry,
)
from ..dependencies import AdminUser, PlacementServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class SwimmerItem(BaseModel):
    """A swimmer in a lane."""
    submission_id: str = Field(default="", description="Id of the swimmer's submission")
    swimmer_name: str = ""
    level: str = ""
    parent_email: str = ""
    parent_phone: str = ""
    submitted_at: Optional[datetime] = None
    placed_at: Optional[datetime] = Field(None, description="Set by the server on first placement")


class WaitlistItem(BaseModel):
    """A swimmer queued for the slot."""
    submission_id: str = Field(default="", description="Id of the swimmer's submission")
    swimmer_name: str = ""
    level: str = ""
    parent_email: str = ""
    parent_phone: str = ""
    submitted_at: Optional[datetime] = None
    waitlist_order: int = Field(default=0, description="Position in the queue, from 0")


class LaneItem(BaseModel):
    lane_number: int = Field(description="Lane number, from 1")
    capacity: int = Field(default=DEFAULT_LANE_CAPACITY, description="Maximum swimmers in the lane")
    swimmers: list[SwimmerItem] = Field(default_factory=list)


class PlacementRequest(BaseModel):
    """Full layout for one slot."""
    activity_id: str = Field(default="", description="Activity the slot belongs to")
    season: str = Field(default="", description="Season")
    location: str = Field(default="", description="Location name")
    slot_label: str = Field(default="", description="Slot label")
    lanes: list[LaneItem] = Field(default_factory=list)
    waitlist: list[WaitlistItem] = Field(default_factory=list)
    expected_version: Optional[int] = Field(
        None,
        description="Version last loaded by the client; 0 when creating. Mismatch returns 409.",
    )


class PlacementResponse(BaseModel):
    id: str = Field(description="Placement id")
    activity_id: str
    season: str
    location: str
    slot_label: str
    lanes: list[LaneItem]
    waitlist: list[WaitlistItem]
    version: int = Field(description="Send back as expected_version on the next save")
    total_capacity: int
    used_capacity: int
    waitlist_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_placement(cls, placement: Placement) -> "PlacementResponse":
        return cls(
            id=placement.id,
            activity_id=placement.key.activity_id,
            season=placement.key.season,
            location=placement.key.location,
            slot_label=placement.key.slot_label,
            lanes=[
                LaneItem(
                    lane_number=lane.lane_number,
                    capacity=lane.capacity,
                    swimmers=[SwimmerItem(**vars(s)) for s in lane.swimmers],
                )
                for lane in placement.lanes
            ],
            waitlist=[WaitlistItem(**vars(entry)) for entry in placement.waitlist],
            version=placement.version,
            total_capacity=placement.total_capacity,
            used_capacity=placement.used_capacity,
            waitlist_count=placement.waitlist_count,
            created_at=placement.created_at,
            updated_at=placement.updated_at,
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[PlacementResponse],
    status_code=status.HTTP_200_OK,
    summary="List placements",
    description="Placements, optionally filtered by season and activity.",
)
def list_placements(
    admin: AdminUser,
    service: PlacementServiceDep,
    season: Optional[str] = Query(None, description="Only this season"),
    activity_id: Optional[str] = Query(None, description="Only this activity"),
) -> list[PlacementResponse]:
    placements = service.list_placements(season=season, activity_id=activity_id)
    return [PlacementResponse.from_placement(p) for p in placements]


@router.post(
    "",
    response_model=PlacementResponse,
    status_code=status.HTTP_200_OK,
    summary="Save a placement",
    description="Create or replace the lane layout and waitlist for one slot.",
    responses={
        400: {"description": "Layout breaks a capacity or uniqueness rule"},
        409: {"description": "Placement was changed by someone else"},
    },
)
def save_placement(
    request: PlacementRequest,
    admin: AdminUser,
    service: PlacementServiceDep,
) -> PlacementResponse:
    key = PlacementKey(
        activity_id=request.activity_id,
        season=request.season,
        location=request.location,
        slot_label=request.slot_label,
    )
    lanes = [
        Lane(
            lane_number=lane.lane_number,
            capacity=lane.capacity,
            swimmers=[PlacementSwimmer(**s.model_dump()) for s in lane.swimmers],
        )
        for lane in request.lanes
    ]
    waitlist = [WaitlistEntry(**entry.model_dump()) for entry in request.waitlist]

    logger.info(
        "Saving placement",
        extra={
            "admin": admin.email,
            "placement_id": key.document_id,
            "expected_version": request.expected_version,
        },
    )

    placement = service.upsert_placement(
        key,
        lanes,
        waitlist,
        expected_version=request.expected_version,
    )
    return PlacementResponse.from_placement(placement)


@router.delete(
    "/{placement_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a placement",
    description="Remove a slot's placement. Unknown ids return 404.",
)
def delete_placement(
    placement_id: str,
    admin: AdminUser,
    service: PlacementServiceDep,
) -> None:
    logger.info("Deleting placement", extra={"admin": admin.email, "placement_id": placement_id})
    service.delete_placement(placement_id)
