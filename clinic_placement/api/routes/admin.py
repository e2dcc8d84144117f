"""
Admin endpoints: who am I, and what have parents asked for.

/admin/me is open to any signed-in caller so the admin UI can decide what
to show; /admin/aggregate requires an admin.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from ...core.placement.aggregator import AggregateResult
from ..dependencies import AdminDirectoryDep, AdminUser, CurrentIdentity, PlacementServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class MeResponse(BaseModel):
    uid: str = Field(description="Caller's user id")
    email: str = Field(description="Caller's email")
    is_admin: bool = Field(description="Whether the caller may use admin endpoints")


class AggregateSwimmerItem(BaseModel):
    swimmer_name: str
    parent_email: str
    parent_phone: str
    level: str


class AggregateRowItem(BaseModel):
    location: str = Field(description="Location name")
    label: str = Field(description="Slot label")
    date_key: str = Field(description="Day the slot falls on, e.g. 'Dec 22'")
    swimmers: list[AggregateSwimmerItem] = Field(description="Swimmers who selected this slot")


class AggregateResponse(BaseModel):
    rows: list[AggregateRowItem] = Field(description="One row per selected slot, sorted by location then label")
    by_level: dict[str, int] = Field(description="Submission count per level")
    unique_swimmer_count: int = Field(description="Distinct swimmers appearing in any row")

    @classmethod
    def from_result(cls, result: AggregateResult) -> "AggregateResponse":
        return cls(
            rows=[
                AggregateRowItem(
                    location=row.location,
                    label=row.label,
                    date_key=row.date_key,
                    swimmers=[
                        AggregateSwimmerItem(
                            swimmer_name=s.swimmer_name,
                            parent_email=s.parent_email,
                            parent_phone=s.parent_phone,
                            level=s.level,
                        )
                        for s in row.swimmers
                    ],
                )
                for row in result.rows
            ],
            by_level=dict(result.by_level),
            unique_swimmer_count=result.unique_swimmer_count,
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/me",
    response_model=MeResponse,
    status_code=status.HTTP_200_OK,
    summary="Current caller",
    description="Identity behind the bearer token and whether it is an admin.",
)
def get_me(identity: CurrentIdentity, directory: AdminDirectoryDep) -> MeResponse:
    return MeResponse(
        uid=identity.uid,
        email=identity.email,
        is_admin=directory.is_admin(identity.email),
    )


@router.get(
    "/aggregate",
    response_model=AggregateResponse,
    status_code=status.HTTP_200_OK,
    summary="Aggregate submissions by slot",
    description="Group submissions by selected slot and count them by level.",
)
def get_aggregate(
    admin: AdminUser,
    service: PlacementServiceDep,
    season: Optional[str] = Query(None, description="Only this season's submissions"),
    activity_id: Optional[str] = Query(None, description="Only slots offered by this activity"),
) -> AggregateResponse:
    logger.info(
        "Aggregate requested",
        extra={"admin": admin.email, "season": season, "activity_id": activity_id},
    )
    return AggregateResponse.from_result(service.aggregate(season=season, activity_id=activity_id))
