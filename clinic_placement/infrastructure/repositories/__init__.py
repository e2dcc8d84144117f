"""
Repository pattern implementations over the document store.

Repositories translate between domain models and stored documents.
"""

from .activities import ActivityRepository
from .placements import PlacementRepository
from .submissions import SubmissionRepository

__all__ = ["ActivityRepository", "PlacementRepository", "SubmissionRepository"]
