"""
Leaderboard Service

Ranks a finished competition's approved submissions and aggregates its top
contributors. Final leaderboards are cached in Redis when it is available.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from snapscape.core.config import settings
from snapscape.core.exceptions import LeaderboardUnavailableError, NotFoundError
from snapscape.core.redis import cache_delete_prefix, cache_get_json, cache_set_json
from snapscape.models.competition import Competition, FINAL_STATUSES
from snapscape.models.submission import PhotoSubmission, SubmissionStatus
from snapscape.models.user import User

logger = logging.getLogger(__name__)

MAX_LIMIT = 100


def ranking_key(submission: PhotoSubmission):
    """average_rating desc, ratings_count desc, then oldest first for a stable order."""
    return (
        -submission.average_rating,
        -submission.ratings_count,
        submission.created_at,
        str(submission.id),
    )


def rank_submissions(submissions: Iterable[PhotoSubmission]) -> List[tuple[int, PhotoSubmission]]:
    """Order submissions and number them 1..N with no gaps."""
    ordered = sorted(submissions, key=ranking_key)
    return [(index, submission) for index, submission in enumerate(ordered, start=1)]


def aggregate_contributors(
    submissions: Iterable[PhotoSubmission], names: Dict[UUID, str]
) -> List[Dict[str, Any]]:
    """Group by user; sort by submission count desc, then summed rating desc."""
    counts: Dict[UUID, int] = defaultdict(int)
    totals: Dict[UUID, float] = defaultdict(float)
    for submission in submissions:
        counts[submission.user_id] += 1
        totals[submission.user_id] += submission.average_rating

    contributors = [
        {
            "user_id": str(user_id),
            "name": names.get(user_id, "Unknown"),
            "submission_count": count,
            "total_rating": totals[user_id],
            "average_rating": totals[user_id] / count,
        }
        for user_id, count in counts.items()
    ]
    contributors.sort(key=lambda c: (-c["submission_count"], -c["total_rating"], c["user_id"]))
    return contributors


def leaderboard_cache_prefix(competition_id: UUID) -> str:
    return f"leaderboard:{competition_id}:"


async def invalidate_leaderboard(competition_id: UUID) -> None:
    await cache_delete_prefix(leaderboard_cache_prefix(competition_id))


class LeaderboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_leaderboard(self, competition_id: UUID, limit: int = 10) -> Dict[str, Any]:
        limit = max(1, min(limit, MAX_LIMIT))

        competition = await self.db.get(Competition, competition_id)
        if not competition:
            raise NotFoundError("Competition not found")

        if competition.status not in FINAL_STATUSES:
            raise LeaderboardUnavailableError(
                "Leaderboard is only available after the competition has ended"
            )

        cache_key = f"{leaderboard_cache_prefix(competition_id)}{limit}"
        cached = await cache_get_json(cache_key)
        if cached is not None:
            return cached

        submissions = await self.approved_submissions(competition_id)
        names = await self._user_names({s.user_id for s in submissions})

        ranked = [
            {
                "rank": rank,
                "submission_id": str(submission.id),
                "title": submission.title,
                "user_id": str(submission.user_id),
                "user_name": names.get(submission.user_id, "Unknown"),
                "image_url": submission.image_url,
                "thumbnail_url": submission.thumbnail_url,
                "average_rating": submission.average_rating,
                "ratings_count": submission.ratings_count,
                "total_rating_sum": submission.total_rating_sum,
            }
            for rank, submission in rank_submissions(submissions)[:limit]
        ]

        leaderboard = {
            "competition_id": str(competition.id),
            "competition_title": competition.title,
            "competition_status": competition.status.value,
            "ranked_submissions": ranked,
            "top_contributors": aggregate_contributors(submissions, names)[:limit],
        }

        await cache_set_json(cache_key, leaderboard, settings.LEADERBOARD_CACHE_TTL)
        return leaderboard

    async def approved_submissions(self, competition_id: UUID) -> List[PhotoSubmission]:
        result = await self.db.execute(
            select(PhotoSubmission).where(
                PhotoSubmission.competition_id == competition_id,
                PhotoSubmission.status == SubmissionStatus.APPROVED,
            )
        )
        return list(result.scalars().all())

    async def _user_names(self, user_ids: set[UUID]) -> Dict[UUID, str]:
        if not user_ids:
            return {}
        result = await self.db.execute(select(User.id, User.name).where(User.id.in_(user_ids)))
        return {user_id: name for user_id, name in result.all()}
