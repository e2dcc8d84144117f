"""
Activity repository.

Activities (clinic, camp and pop-up configurations) are looked up by id
and listed newest first. Updates rewrite the whole document; archiving only
touches the active flag and the archive time.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ...core.placement.models import (
    Activity,
    ActivityLocation,
    ActivitySlot,
    ActivityType,
)
from ..documents.client import DocumentStore, StoredDocument
from .codec import from_iso, to_iso

logger = logging.getLogger(__name__)

ACTIVITIES_COLLECTION = "clinic_configs"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class ActivityRepository:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def get(self, activity_id: str) -> Optional[Activity]:
        document = self._store.get(ACTIVITIES_COLLECTION, activity_id)
        return self._to_activity(document) if document else None

    def list_activities(
        self,
        season: Optional[str] = None,
        active_only: bool = False,
    ) -> list[Activity]:
        filters: dict[str, Any] = {}
        if season:
            filters["season"] = season
        if active_only:
            filters["active"] = True
        documents = self._store.query(ACTIVITIES_COLLECTION, filters or None)
        activities = [self._to_activity(doc) for doc in documents]
        activities.sort(key=lambda a: a.created_at or _OLDEST, reverse=True)
        return activities

    def create(self, activity: Activity) -> Activity:
        activity.id = self._store.add(ACTIVITIES_COLLECTION, self._to_document(activity))
        return activity

    def update(self, activity: Activity) -> Activity:
        self._store.set(ACTIVITIES_COLLECTION, activity.id, self._to_document(activity))
        return activity

    def archive(self, activity_id: str, archived_at: datetime) -> None:
        self._store.set(
            ACTIVITIES_COLLECTION,
            activity_id,
            {"active": False, "archived_at": to_iso(archived_at)},
            merge=True,
        )

    def delete(self, activity_id: str) -> None:
        self._store.delete(ACTIVITIES_COLLECTION, activity_id)

    @staticmethod
    def _to_document(activity: Activity) -> dict[str, Any]:
        return {
            "season": activity.season,
            "title": activity.title,
            "type": activity.type.value,
            "description": activity.description,
            "locations": [
                {
                    "name": location.name,
                    "slots": [
                        {"label": slot.label, "date": slot.date, "time": slot.time}
                        for slot in location.slots
                    ],
                }
                for location in activity.locations
            ],
            "levels": list(activity.levels),
            "active": activity.active,
            "is_full": activity.is_full,
            "created_at": to_iso(activity.created_at),
            "updated_at": to_iso(activity.updated_at),
            "archived_at": to_iso(activity.archived_at),
        }

    @staticmethod
    def _to_activity(document: StoredDocument) -> Activity:
        data = document.data
        try:
            activity_type = ActivityType(data.get("type") or ActivityType.CLINIC.value)
        except ValueError:
            logger.warning(
                "Unknown activity type, treating as clinic",
                extra={"activity_id": document.id, "type": data.get("type")},
            )
            activity_type = ActivityType.CLINIC

        return Activity(
            id=document.id,
            season=str(data.get("season") or ""),
            title=str(data.get("title") or ""),
            type=activity_type,
            description=str(data.get("description") or ""),
            locations=[
                ActivityLocation(
                    name=str(location.get("name") or ""),
                    slots=[
                        ActivitySlot(
                            label=str(slot.get("label") or ""),
                            date=slot.get("date"),
                            time=slot.get("time"),
                        )
                        for slot in (location.get("slots") or [])
                    ],
                )
                for location in (data.get("locations") or [])
            ],
            levels=[str(level) for level in (data.get("levels") or [])],
            active=bool(data.get("active", True)),
            is_full=bool(data.get("is_full", False)),
            created_at=from_iso(data.get("created_at")),
            updated_at=from_iso(data.get("updated_at")),
            archived_at=from_iso(data.get("archived_at")),
        )
