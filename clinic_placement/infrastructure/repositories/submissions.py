"""
Submission repository.

Reads and writes preference submissions. Submissions are stored under the
id derived from the swimmer's identity, so a resubmission overwrites the
earlier document instead of adding a second one.
"""

import logging
from typing import Any, Optional

from ...core.placement.models import Preference, Submission
from ..documents.client import DocumentStore, StoredDocument
from .codec import from_iso, to_iso

logger = logging.getLogger(__name__)

SUBMISSIONS_COLLECTION = "clinic_submissions"


class SubmissionRepository:
    """Submission Store Reader, plus the single write used by intake."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_submissions(self, season: Optional[str] = None) -> list[Submission]:
        filters = {"season": season} if season else None
        documents = self._store.query(SUBMISSIONS_COLLECTION, filters)
        return [self._to_submission(doc) for doc in documents]

    def save_submission(self, submission: Submission) -> None:
        self._store.set(
            SUBMISSIONS_COLLECTION,
            submission.id,
            self._to_document(submission),
            merge=True,
        )

    @staticmethod
    def _to_document(submission: Submission) -> dict[str, Any]:
        data: dict[str, Any] = {
            "season": submission.season,
            "swimmer_name": submission.swimmer_name,
            "parent_email": submission.parent_email,
            "parent_phone": submission.parent_phone,
            "level": submission.level,
            "preferences": [
                {"location": p.location, "selections": list(p.selections)}
                for p in submission.preferences
            ],
            "submitted_at": to_iso(submission.submitted_at),
        }
        if submission.swimmer_id:
            data["swimmer_id"] = submission.swimmer_id
        return data

    @staticmethod
    def _to_submission(document: StoredDocument) -> Submission:
        data = document.data
        preferences = [
            Preference(
                location=str(p.get("location") or ""),
                selections=[str(s) for s in (p.get("selections") or [])],
            )
            for p in (data.get("preferences") or [])
            if isinstance(p, dict)
        ]
        return Submission(
            id=document.id,
            season=str(data.get("season") or ""),
            swimmer_name=str(data.get("swimmer_name") or ""),
            parent_email=str(data.get("parent_email") or ""),
            parent_phone=str(data.get("parent_phone") or ""),
            level=str(data.get("level") or "unknown"),
            preferences=preferences,
            submitted_at=from_iso(data.get("submitted_at")),
            swimmer_id=data.get("swimmer_id"),
        )
