"""
Results Service

Finalizes the top-3 placements of finished competitions and serves the
achievement and statistics views built on them.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import delete, distinct, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from snapscape.core.exceptions import ConflictError, NotFoundError
from snapscape.models.competition import Competition, FINAL_STATUSES
from snapscape.models.rating import Rating
from snapscape.models.result import PRIZES, Result
from snapscape.models.submission import PhotoSubmission
from snapscape.models.user import User
from snapscape.services.leaderboard import LeaderboardService, invalidate_leaderboard, rank_submissions
from snapscape.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

PODIUM_SIZE = 3


class ResultsService:
    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications

    async def sync_competition_results(self, competition_id: UUID) -> List[Result]:
        """
        Replace the competition's Result rows with its current top three.
        Only approved submissions with at least one rating can place.
        """
        competition = await self.db.get(Competition, competition_id)
        if not competition:
            raise NotFoundError("Competition not found")
        if competition.status not in FINAL_STATUSES:
            raise ConflictError("Results are only available after the competition has ended")

        submissions = await LeaderboardService(self.db).approved_submissions(competition_id)
        rated = [s for s in submissions if s.ratings_count > 0]
        podium = rank_submissions(rated)[:PODIUM_SIZE]

        results = [
            Result(
                competition_id=competition_id,
                user_id=submission.user_id,
                photo_id=submission.id,
                position=position,
                final_score=submission.average_rating,
                prize=PRIZES[position],
            )
            for position, submission in podium
        ]

        try:
            await self.db.execute(delete(Result).where(Result.competition_id == competition_id))
            self.db.add_all(results)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"Result sync failed for competition {competition_id}: {e}")
            raise ConflictError("Results could not be saved")

        await invalidate_leaderboard(competition_id)
        logger.info(f"Synced {len(results)} results for \"{competition.title}\"")

        if self.notifications and results:
            winners = await self.db.execute(
                select(User).where(User.id.in_([r.user_id for r in results]))
            )
            users = {user.id: user for user in winners.scalars().all()}
            for result in results:
                user = users.get(result.user_id)
                if user:
                    await self.notifications.notify_result(
                        user, competition_id, competition.title, result.position, result.photo_id
                    )
            await self.db.commit()

        return results

    async def competition_results(self, competition_id: UUID) -> List[Dict[str, Any]]:
        competition = await self.db.get(Competition, competition_id)
        if not competition:
            raise NotFoundError("Competition not found")
        return await self._results_view(Result.competition_id == competition_id)

    async def user_achievements(self, user_id: UUID) -> List[Dict[str, Any]]:
        return await self._results_view(Result.user_id == user_id)

    async def _results_view(self, condition) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Result, Competition.title, User.name, PhotoSubmission.title, PhotoSubmission.thumbnail_url)
            .join(Competition, Result.competition_id == Competition.id)
            .join(User, Result.user_id == User.id)
            .join(PhotoSubmission, Result.photo_id == PhotoSubmission.id)
            .where(condition)
            .order_by(Result.created_at.desc(), Result.position)
        )
        return [
            {
                "id": row.id,
                "competition_id": row.competition_id,
                "competition_title": competition_title,
                "user_id": row.user_id,
                "user_name": user_name,
                "photo_id": row.photo_id,
                "photo_title": photo_title,
                "thumbnail_url": thumbnail_url,
                "position": row.position,
                "final_score": row.final_score,
                "prize": row.prize,
                "created_at": row.created_at,
            }
            for row, competition_title, user_name, photo_title, thumbnail_url in result.all()
        ]

    async def user_stats(self, user_id: UUID) -> Dict[str, int]:
        submissions = await self.db.execute(
            select(func.count(PhotoSubmission.id)).where(PhotoSubmission.user_id == user_id)
        )
        rated = await self.db.execute(select(func.count(Rating.id)).where(Rating.user_id == user_id))
        entered = await self.db.execute(
            select(func.count(distinct(PhotoSubmission.competition_id))).where(
                PhotoSubmission.user_id == user_id
            )
        )
        won = await self.db.execute(
            select(func.count(Result.id)).where(Result.user_id == user_id, Result.position == 1)
        )
        podiums = await self.db.execute(select(func.count(Result.id)).where(Result.user_id == user_id))

        return {
            "total_submissions": submissions.scalar_one(),
            "photos_rated": rated.scalar_one(),
            "competitions_entered": entered.scalar_one(),
            "competitions_won": won.scalar_one(),
            "podium_finishes": podiums.scalar_one(),
        }
