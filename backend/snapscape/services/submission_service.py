"""
Submission Service

Photo uploads into competitions, visibility rules for listing them, and the
owner/admin lifecycle operations (archive, moderate, delete).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from snapscape.core.config import settings
from snapscape.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from snapscape.models.competition import Competition, CompetitionStatus
from snapscape.models.notification import NotificationType
from snapscape.models.rating import Rating
from snapscape.models.result import Result
from snapscape.models.submission import PhotoSubmission, SubmissionStatus
from snapscape.models.user import User
from snapscape.services.image_store import CloudinaryImageStore
from snapscape.services.leaderboard import invalidate_leaderboard
from snapscape.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/heic")


class SubmissionService:
    def __init__(self, db: AsyncSession, image_store: Optional[CloudinaryImageStore] = None):
        self.db = db
        self.image_store = image_store

    async def get(self, submission_id: UUID) -> PhotoSubmission:
        submission = await self.db.get(PhotoSubmission, submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        return submission

    async def create_submission(
        self,
        user: User,
        competition_id: UUID,
        title: str,
        description: Optional[str],
        content: bytes,
        filename: str,
        content_type: Optional[str],
    ) -> PhotoSubmission:
        competition = await self.db.get(Competition, competition_id)
        if not competition:
            raise NotFoundError("Competition not found")
        if competition.status != CompetitionStatus.ACTIVE:
            raise ConflictError("Competition is not accepting submissions")

        title = (title or "").strip()
        if not title or len(title) > 100:
            raise ValidationError("Title is required and cannot be more than 100 characters")
        if description and len(description) > 500:
            raise ValidationError("Description cannot be more than 500 characters")
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("Only JPEG, PNG, WEBP or HEIC images are accepted")
        if not content:
            raise ValidationError("Image file is empty")
        if len(content) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
            raise ValidationError(f"Image cannot be larger than {settings.MAX_UPLOAD_SIZE_MB}MB")

        existing = await self.db.execute(
            select(func.count(PhotoSubmission.id)).where(
                PhotoSubmission.user_id == user.id,
                PhotoSubmission.competition_id == competition_id,
            )
        )
        if existing.scalar_one() >= competition.submission_limit:
            raise ConflictError(
                f"Submission limit reached ({competition.submission_limit} per user)"
            )

        stored = await self.image_store.upload(content, filename, content_type)

        submission = PhotoSubmission(
            user_id=user.id,
            competition_id=competition_id,
            title=title,
            description=description,
            image_url=stored.url,
            thumbnail_url=stored.thumbnail_url,
            image_public_id=stored.public_id,
        )
        self.db.add(submission)
        NotificationService(self.db).create(
            user.id,
            "Photo submitted",
            f'Your photo "{title}" was submitted to "{competition.title}" and is awaiting review.',
            type=NotificationType.PHOTO_SUBMISSION,
            related_link="/dashboard/submissions",
            related_competition_id=competition_id,
            related_photo_id=submission.id,
        )
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await self.image_store.delete(stored.public_id)
            raise

        logger.info(f"Submission {submission.id} created by {user.id} in {competition_id}")
        return submission

    async def list_competition_submissions(
        self,
        competition_id: UUID,
        viewer: User,
        status: Optional[SubmissionStatus] = None,
    ) -> List[PhotoSubmission]:
        """
        Admins see everything (optionally filtered by status). Others see
        approved photos plus their own, and only their own during an active
        competition that hides other submissions.
        """
        competition = await self.db.get(Competition, competition_id)
        if not competition:
            raise NotFoundError("Competition not found")

        stmt = select(PhotoSubmission).where(PhotoSubmission.competition_id == competition_id)

        if viewer.is_admin:
            if status:
                stmt = stmt.where(PhotoSubmission.status == status)
        elif competition.hide_other_submissions and competition.status == CompetitionStatus.ACTIVE:
            stmt = stmt.where(PhotoSubmission.user_id == viewer.id)
        else:
            stmt = stmt.where(
                or_(
                    PhotoSubmission.status == SubmissionStatus.APPROVED,
                    PhotoSubmission.user_id == viewer.id,
                )
            )
            if status:
                stmt = stmt.where(PhotoSubmission.status == status)

        result = await self.db.execute(stmt.order_by(PhotoSubmission.created_at.desc()))
        return list(result.scalars().all())

    async def list_user_submissions(
        self,
        user_id: UUID,
        status: Optional[SubmissionStatus] = None,
        archived: Optional[bool] = None,
        page: int = 1,
        limit: int = 12,
    ) -> Dict[str, Any]:
        page = max(page, 1)
        limit = max(1, min(limit, 100))

        conditions = [PhotoSubmission.user_id == user_id]
        if status:
            conditions.append(PhotoSubmission.status == status)
        if archived is not None:
            conditions.append(PhotoSubmission.archived == archived)

        total_result = await self.db.execute(select(func.count(PhotoSubmission.id)).where(*conditions))
        total = total_result.scalar_one()

        result = await self.db.execute(
            select(PhotoSubmission, Competition.title, Competition.status)
            .join(Competition, PhotoSubmission.competition_id == Competition.id)
            .where(*conditions)
            .order_by(PhotoSubmission.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        return {
            "items": [
                {
                    **submission.model_dump(exclude={"image_public_id"}),
                    "competition_title": competition_title,
                    "competition_status": competition_status,
                }
                for submission, competition_title, competition_status in result.all()
            ],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": (total + limit - 1) // limit,
            },
        }

    async def set_archived(self, submission_id: UUID, user: User, archived: bool) -> PhotoSubmission:
        submission = await self.get(submission_id)
        if submission.user_id != user.id:
            raise ForbiddenError("You can only archive your own submissions")
        submission.archived = archived
        submission.updated_at = datetime.utcnow()
        await self.db.commit()
        await invalidate_leaderboard(submission.competition_id)
        return submission

    async def moderate(self, submission_id: UUID, status: SubmissionStatus) -> PhotoSubmission:
        submission = await self.get(submission_id)
        submission.status = status
        submission.updated_at = datetime.utcnow()

        if status != SubmissionStatus.PENDING:
            NotificationService(self.db).create(
                submission.user_id,
                f"Photo {status.value}",
                f'Your photo "{submission.title}" was {status.value}.',
                type=NotificationType.PHOTO_SUBMISSION,
                related_link="/dashboard/submissions",
                related_competition_id=submission.competition_id,
                related_photo_id=submission.id,
            )
        await self.db.commit()
        await invalidate_leaderboard(submission.competition_id)
        logger.info(f"Submission {submission_id} moderated: {status.value}")
        return submission

    async def delete_submission(self, submission_id: UUID, actor: User) -> None:
        """Owner or admin. Ratings and results referencing the photo go with it."""
        submission = await self.get(submission_id)
        if submission.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("You can only delete your own submissions")

        public_id = submission.image_public_id
        competition_id = submission.competition_id

        await self.db.execute(delete(Rating).where(Rating.photo_id == submission_id))
        await self.db.execute(delete(Result).where(Result.photo_id == submission_id))
        await self.db.delete(submission)
        await self.db.commit()

        if self.image_store and public_id:
            await self.image_store.delete(public_id)

        await invalidate_leaderboard(competition_id)
        logger.info(f"Submission {submission_id} deleted by {actor.id}")
