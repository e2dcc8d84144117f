"""
Recommendation endpoint (admin only).

Ranks each swimmer's selected slots by how likely they are to get in:
open slots first in submission order, then full slots by waitlist length.
Advisory only; nothing is reserved.
"""

import logging

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from ...core.placement.models import Recommendation
from ..dependencies import AdminUser, PlacementServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


class SlotRecommendationItem(BaseModel):
    location: str
    slot_label: str
    reason: str = Field(description="Why the slot ranks where it does")
    priority: int = Field(description="Lower is recommended sooner")
    available: int = Field(description="Open spots in the slot")
    waitlist_count: int = Field(description="Swimmers already waiting")
    needs_configuration: bool = Field(
        description="True when the slot has no placement yet and default capacity was assumed",
    )


class RecommendationItem(BaseModel):
    submission_id: str
    swimmer_name: str
    level: str
    parent_email: str
    parent_phone: str
    submitted_at: int = Field(description="Submission time, epoch milliseconds")
    recommended_slots: list[SlotRecommendationItem]

    @classmethod
    def from_recommendation(cls, rec: Recommendation) -> "RecommendationItem":
        return cls(
            submission_id=rec.submission_id,
            swimmer_name=rec.swimmer_name,
            level=rec.level,
            parent_email=rec.parent_email,
            parent_phone=rec.parent_phone,
            submitted_at=rec.submitted_at,
            recommended_slots=[SlotRecommendationItem(**vars(s)) for s in rec.recommended_slots],
        )


class RecommendationsResponse(BaseModel):
    recommendations: list[RecommendationItem] = Field(description="One entry per submission, earliest first")


@router.get(
    "",
    response_model=RecommendationsResponse,
    status_code=status.HTTP_200_OK,
    summary="Recommend slots",
    description="Rank every submission's selected slots for one season and activity.",
)
def get_recommendations(
    admin: AdminUser,
    service: PlacementServiceDep,
    season: str = Query("", description="Season to recommend for"),
    activity_id: str = Query("", description="Activity whose placements are considered"),
) -> RecommendationsResponse:
    results = service.recommendations(season, activity_id)
    logger.info(
        "Recommendations served",
        extra={"admin": admin.email, "season": season, "count": len(results)},
    )
    return RecommendationsResponse(
        recommendations=[RecommendationItem.from_recommendation(r) for r in results],
    )
