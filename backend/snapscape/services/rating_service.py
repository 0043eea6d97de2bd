"""
Rating Service

Handles vote submission and photo rating aggregation.

CRITICAL OPERATIONS:
1. Validate the vote (score range, ownership, voting window)
2. Upsert the rating in a single INSERT .. ON CONFLICT backed by the
   UNIQUE(user_id, photo_id) constraint; the returned id tells a new vote
   from a re-vote
3. Recompute the photo's count/sum/average by rescanning its ratings
4. Commit both in one transaction so the response reflects the new average
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from snapscape.core.database import dialect_insert
from snapscape.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from snapscape.models.competition import Competition, CompetitionStatus
from snapscape.models.rating import MAX_SCORE, MIN_SCORE, Rating
from snapscape.models.submission import PhotoSubmission, SubmissionStatus
from snapscape.services.leaderboard import invalidate_leaderboard

logger = logging.getLogger(__name__)


def compute_average(total: int, count: int) -> float:
    return total / count if count > 0 else 0.0


def validate_score(score: Any) -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError("Rating must be a whole number between 1 and 5")
    if score < MIN_SCORE or score > MAX_SCORE:
        raise ValidationError("Rating must be between 1 and 5")
    return score


class RatingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def submit_rating(
        self,
        user_id: UUID,
        photo_id: UUID,
        score: int,
        comment: Optional[str] = None,
    ) -> Dict[str, Any]:
        score = validate_score(score)

        photo = await self.db.get(PhotoSubmission, photo_id)
        if not photo:
            raise NotFoundError("Submission not found")

        if photo.user_id == user_id:
            raise ForbiddenError("You cannot rate your own submission")

        competition = await self.db.get(Competition, photo.competition_id)
        if not competition or competition.status != CompetitionStatus.VOTING:
            raise ConflictError("Competition is not open for voting")

        if photo.status != SubmissionStatus.APPROVED or photo.archived:
            raise ConflictError("Submission is not available for rating")

        now = datetime.utcnow()
        new_id = uuid4()
        on_conflict = {"score": score, "updated_at": now}
        if comment is not None:
            on_conflict["comment"] = comment

        stmt = (
            dialect_insert(self.db, Rating)
            .values(
                id=new_id,
                user_id=user_id,
                photo_id=photo_id,
                competition_id=competition.id,
                score=score,
                comment=comment,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_update(index_elements=["user_id", "photo_id"], set_=on_conflict)
            .returning(Rating.id)
        )

        try:
            # On conflict the existing row keeps its id, so a fresh id means a new vote
            stored_id = (await self.db.execute(stmt)).scalar_one()
            created = stored_id == new_id
            count, total, average = await self.recompute_photo_aggregates(photo)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"Rating write rejected for photo {photo_id}: {e}")
            raise ConflictError("Rating could not be saved")

        result = await self.db.execute(
            select(Rating)
            .where(Rating.user_id == user_id, Rating.photo_id == photo_id)
            .execution_options(populate_existing=True)
        )
        rating = result.scalar_one()

        await invalidate_leaderboard(competition.id)

        logger.info(
            f"Rating {'created' if created else 'updated'}: photo={photo_id} "
            f"score={score} avg={average:.2f} count={count}"
        )

        return {
            "rating": rating,
            "average_rating": average,
            "ratings_count": count,
            "total_rating_sum": total,
            "created": created,
        }

    async def recompute_photo_aggregates(self, photo: PhotoSubmission) -> Tuple[int, int, float]:
        """
        O(n) rescan of the photo's ratings. Writes count/sum/average onto the
        photo; the caller commits.
        """
        result = await self.db.execute(
            select(func.count(Rating.id), func.coalesce(func.sum(Rating.score), 0))
            .where(Rating.photo_id == photo.id)
        )
        count, total = result.one()
        count, total = int(count), int(total)
        average = compute_average(total, count)

        photo.ratings_count = count
        photo.total_rating_sum = total
        photo.average_rating = average
        photo.updated_at = datetime.utcnow()
        self.db.add(photo)
        return count, total, average

    async def delete_rating(self, user_id: UUID, rating_id: UUID) -> Dict[str, Any]:
        """Withdraw one's own vote while voting is still open."""
        rating = await self.db.get(Rating, rating_id)
        if not rating:
            raise NotFoundError("Rating not found")
        if rating.user_id != user_id:
            raise ForbiddenError("You can only delete your own ratings")

        competition = await self.db.get(Competition, rating.competition_id)
        if not competition or competition.status != CompetitionStatus.VOTING:
            raise ConflictError("Ratings can only be withdrawn while voting is open")

        competition_id = rating.competition_id
        photo = await self.db.get(PhotoSubmission, rating.photo_id)
        await self.db.delete(rating)
        await self.db.flush()

        count, total, average = 0, 0, 0.0
        if photo:
            count, total, average = await self.recompute_photo_aggregates(photo)
        await self.db.commit()
        await invalidate_leaderboard(competition_id)

        return {"average_rating": average, "ratings_count": count, "total_rating_sum": total}

    async def list_user_ratings(
        self,
        user_id: UUID,
        competition_id: Optional[UUID] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """Ratings the user has given, newest first, with photo and competition titles."""
        page = max(page, 1)
        limit = max(1, min(limit, 100))

        conditions = [Rating.user_id == user_id]
        if competition_id:
            conditions.append(Rating.competition_id == competition_id)

        total_result = await self.db.execute(select(func.count(Rating.id)).where(*conditions))
        total = total_result.scalar_one()

        result = await self.db.execute(
            select(Rating, PhotoSubmission.title, PhotoSubmission.thumbnail_url, Competition.title)
            .join(PhotoSubmission, Rating.photo_id == PhotoSubmission.id)
            .join(Competition, Rating.competition_id == Competition.id)
            .where(*conditions)
            .order_by(Rating.updated_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        items: List[Dict[str, Any]] = [
            {
                "id": str(rating.id),
                "photo_id": str(rating.photo_id),
                "photo_title": photo_title,
                "thumbnail_url": thumbnail_url,
                "competition_id": str(rating.competition_id),
                "competition_title": competition_title,
                "score": rating.score,
                "comment": rating.comment,
                "rated_at": rating.updated_at.isoformat(),
            }
            for rating, photo_title, thumbnail_url, competition_title in result.all()
        ]

        return {
            "items": items,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": (total + limit - 1) // limit,
            },
        }
