"""
Rating maintenance: removes orphaned and duplicate ratings left over from
data imported before UNIQUE(user_id, photo_id) existed, then recomputes the
aggregates of every affected photo.
"""

from typing import Dict, List, Set, Tuple
from uuid import UUID
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from snapscape.models.rating import Rating, RatingCleanupStats
from snapscape.models.submission import PhotoSubmission
from snapscape.services.rating_service import RatingService

logger = logging.getLogger(__name__)


def find_duplicate_ratings(ratings: List[Rating]) -> Tuple[List[Rating], List[Rating]]:
    """
    Split ratings into (kept, duplicates). The earliest rating of each
    (user, photo) pair is kept.
    """
    ordered = sorted(ratings, key=lambda r: (r.created_at, str(r.id)))
    seen: Dict[Tuple[UUID, UUID], Rating] = {}
    duplicates: List[Rating] = []
    for rating in ordered:
        key = (rating.user_id, rating.photo_id)
        if key in seen:
            duplicates.append(rating)
        else:
            seen[key] = rating
    return list(seen.values()), duplicates


class RatingMaintenance:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self) -> int:
        result = await self.db.execute(select(func.count(Rating.id)))
        return result.scalar_one()

    async def cleanup_ratings(self) -> RatingCleanupStats:
        ratings_before = await self._count()

        orphan_result = await self.db.execute(
            select(Rating).where(
                Rating.photo_id.not_in(select(PhotoSubmission.id))
            )
        )
        orphans = orphan_result.scalars().all()

        affected_users: Set[str] = {str(r.user_id) for r in orphans}
        if orphans:
            await self.db.execute(delete(Rating).where(Rating.id.in_([r.id for r in orphans])))
            logger.info(f"Removed {len(orphans)} orphaned ratings")

        remaining = await self.db.execute(select(Rating))
        _, duplicates = find_duplicate_ratings(list(remaining.scalars().all()))

        affected_photos: Set[UUID] = {r.photo_id for r in duplicates}
        affected_users.update(str(r.user_id) for r in duplicates)
        if duplicates:
            await self.db.execute(delete(Rating).where(Rating.id.in_([r.id for r in duplicates])))
            logger.info(f"Removed {len(duplicates)} duplicate ratings")

        service = RatingService(self.db)
        for photo_id in affected_photos:
            photo = await self.db.get(PhotoSubmission, photo_id)
            if photo:
                await service.recompute_photo_aggregates(photo)

        await self.db.commit()

        ratings_after = await self._count()
        return RatingCleanupStats(
            ratings_before=ratings_before,
            orphaned_ratings_removed=len(orphans),
            duplicate_ratings_removed=len(duplicates),
            ratings_after=ratings_after,
            total_ratings_removed=len(orphans) + len(duplicates),
            affected_users=sorted(affected_users),
            affected_photo_count=len(affected_photos),
        )

    async def recompute_all_aggregates(self) -> int:
        """Rebuild count/sum/average for every submission. Returns photos touched."""
        result = await self.db.execute(select(PhotoSubmission))
        photos = result.scalars().all()
        service = RatingService(self.db)
        for photo in photos:
            await service.recompute_photo_aggregates(photo)
        await self.db.commit()
        logger.info(f"Recomputed rating aggregates for {len(photos)} submissions")
        return len(photos)
