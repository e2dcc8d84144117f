"""
Placement repository.

Each placement is one document, stored under the id derived from its
(activity, season, location, slot label) key. The document version is the
placement version; writes go through compare_and_set.
"""

import logging
from typing import Any, Optional

from ...core.placement.models import (
    DEFAULT_LANE_CAPACITY,
    Lane,
    Placement,
    PlacementKey,
    PlacementSwimmer,
    WaitlistEntry,
)
from ..documents.client import DocumentStore, StoredDocument
from .codec import from_iso, to_iso

logger = logging.getLogger(__name__)

PLACEMENTS_COLLECTION = "activity_placements"


def _swimmer_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "submission_id": str(data.get("submission_id") or ""),
        "swimmer_name": str(data.get("swimmer_name") or ""),
        "level": str(data.get("level") or ""),
        "parent_email": str(data.get("parent_email") or ""),
        "parent_phone": str(data.get("parent_phone") or ""),
        "submitted_at": from_iso(data.get("submitted_at")),
    }


class PlacementRepository:
    """Placement Store: keyed reads, filtered listing, versioned writes."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get(self, key: PlacementKey) -> Optional[Placement]:
        return self.get_by_id(key.document_id)

    def get_by_id(self, placement_id: str) -> Optional[Placement]:
        document = self._store.get(PLACEMENTS_COLLECTION, placement_id)
        return self._to_placement(document) if document else None

    def list_placements(
        self,
        season: Optional[str] = None,
        activity_id: Optional[str] = None,
    ) -> list[Placement]:
        filters: dict[str, Any] = {}
        if season:
            filters["season"] = season
        if activity_id:
            filters["activity_id"] = activity_id
        documents = self._store.query(PLACEMENTS_COLLECTION, filters or None)
        return [self._to_placement(doc) for doc in documents]

    def write(self, placement: Placement, expected_version: int) -> bool:
        """Store the placement if nobody else wrote it since expected_version."""
        return self._store.compare_and_set(
            PLACEMENTS_COLLECTION,
            placement.id,
            self._to_document(placement),
            expected_version,
        )

    def delete(self, placement_id: str) -> None:
        self._store.delete(PLACEMENTS_COLLECTION, placement_id)

    @staticmethod
    def _to_document(placement: Placement) -> dict[str, Any]:
        key = placement.key
        return {
            "activity_id": key.activity_id,
            "season": key.season,
            "location": key.location,
            "slot_label": key.slot_label,
            "lanes": [
                {
                    "lane_number": lane.lane_number,
                    "capacity": lane.capacity,
                    "swimmers": [
                        {
                            "submission_id": s.submission_id,
                            "swimmer_name": s.swimmer_name,
                            "level": s.level,
                            "parent_email": s.parent_email,
                            "parent_phone": s.parent_phone,
                            "submitted_at": to_iso(s.submitted_at),
                            "placed_at": to_iso(s.placed_at),
                        }
                        for s in lane.swimmers
                    ],
                }
                for lane in placement.lanes
            ],
            "waitlist": [
                {
                    "submission_id": w.submission_id,
                    "swimmer_name": w.swimmer_name,
                    "level": w.level,
                    "parent_email": w.parent_email,
                    "parent_phone": w.parent_phone,
                    "submitted_at": to_iso(w.submitted_at),
                    "waitlist_order": w.waitlist_order,
                }
                for w in placement.waitlist
            ],
            "created_at": to_iso(placement.created_at),
            "updated_at": to_iso(placement.updated_at),
        }

    @staticmethod
    def _to_placement(document: StoredDocument) -> Placement:
        data = document.data
        lanes = [
            Lane(
                lane_number=int(lane.get("lane_number") or 0),
                capacity=int(lane.get("capacity") or DEFAULT_LANE_CAPACITY),
                swimmers=[
                    PlacementSwimmer(
                        **_swimmer_fields(s),
                        placed_at=from_iso(s.get("placed_at")),
                    )
                    for s in (lane.get("swimmers") or [])
                ],
            )
            for lane in (data.get("lanes") or [])
        ]
        waitlist = [
            WaitlistEntry(
                **_swimmer_fields(w),
                waitlist_order=int(w.get("waitlist_order") or 0),
            )
            for w in (data.get("waitlist") or [])
        ]
        waitlist.sort(key=lambda entry: entry.waitlist_order)

        return Placement(
            key=PlacementKey(
                activity_id=str(data.get("activity_id") or ""),
                season=str(data.get("season") or ""),
                location=str(data.get("location") or ""),
                slot_label=str(data.get("slot_label") or ""),
            ),
            lanes=lanes,
            waitlist=waitlist,
            id=document.id,
            version=document.version,
            created_at=from_iso(data.get("created_at")),
            updated_at=from_iso(data.get("updated_at")),
        )
