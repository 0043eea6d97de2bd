"""
Competition Status Updater

Recomputes each competition's lifecycle stage from its dates and persists
the ones that changed.

CRITICAL OPERATIONS:
1. Snapshot every non-terminal (and, unless bypassed, non-overridden) competition
2. Compute the expected status with compute_expected_status()
3. Commit each change on its own; a failing competition is rolled back and
   reported without aborting the batch
4. Notify users when voting opens or a competition completes, and finalize
   results on completion
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from snapscape.models.competition import (
    Competition,
    CompetitionStatus,
    STATUS_ORDER,
    StatusPreview,
    StatusUpdateResult,
)
from snapscape.services.notification_service import NotificationService
from snapscape.services.results_service import ResultsService

logger = logging.getLogger(__name__)


def status_from_dates(
    now: datetime, start_date: datetime, end_date: datetime, voting_end_date: datetime
) -> CompetitionStatus:
    """
    Stage implied by the dates alone. A voting_end_date earlier than end_date
    passes straight through voting once both are in the past.
    """
    if now < start_date:
        return CompetitionStatus.UPCOMING
    if now < end_date:
        return CompetitionStatus.ACTIVE
    if now < voting_end_date:
        return CompetitionStatus.VOTING
    return CompetitionStatus.COMPLETED


def compute_expected_status(
    now: datetime,
    start_date: datetime,
    end_date: datetime,
    voting_end_date: datetime,
    current_status: CompetitionStatus,
    manual_override: bool = False,
) -> CompetitionStatus:
    """
    Status that should hold at `now`. Pure and deterministic.

    Overridden and archived competitions keep their status, and the result is
    never earlier in the lifecycle than current_status.
    """
    current_status = CompetitionStatus(current_status)
    if manual_override or current_status == CompetitionStatus.ARCHIVED:
        return current_status

    derived = status_from_dates(now, start_date, end_date, voting_end_date)
    if STATUS_ORDER.index(derived) < STATUS_ORDER.index(current_status):
        return current_status
    return derived


@dataclass
class _Snapshot:
    id: UUID
    title: str
    status: CompetitionStatus
    start_date: datetime
    end_date: datetime
    voting_end_date: datetime
    manual_status_override: bool


class CompetitionStatusUpdater:
    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications

    async def _snapshots(self, bypass_override: bool) -> List[_Snapshot]:
        # Plain snapshots survive the per-item rollbacks below
        stmt = select(Competition).where(Competition.status != CompetitionStatus.ARCHIVED)
        if not bypass_override:
            stmt = stmt.where(Competition.manual_status_override == False)
        result = await self.db.execute(stmt.order_by(Competition.start_date))
        return [
            _Snapshot(
                id=c.id,
                title=c.title,
                status=CompetitionStatus(c.status),
                start_date=c.start_date,
                end_date=c.end_date,
                voting_end_date=c.voting_end_date,
                manual_status_override=c.manual_status_override,
            )
            for c in result.scalars().all()
        ]

    async def update_all(
        self, bypass_override: bool = False, now: Optional[datetime] = None
    ) -> List[StatusUpdateResult]:
        now = now or datetime.utcnow()
        logger.info(f"[AUTO-STATUS] Starting status update at {now.isoformat()} (bypass={bypass_override})")

        snapshots = await self._snapshots(bypass_override)
        logger.info(f"[AUTO-STATUS] Found {len(snapshots)} competitions to check")

        results: List[StatusUpdateResult] = []
        for snapshot in snapshots:
            expected = compute_expected_status(
                now,
                snapshot.start_date,
                snapshot.end_date,
                snapshot.voting_end_date,
                snapshot.status,
            )
            if expected == snapshot.status:
                continue
            results.append(await self._apply(snapshot, expected, now))

        succeeded = sum(1 for r in results if r.success)
        logger.info(
            f"[AUTO-STATUS] Completed: {succeeded} updated, {len(results) - succeeded} failed"
        )
        return results

    async def _apply(
        self, snapshot: _Snapshot, new_status: CompetitionStatus, now: datetime
    ) -> StatusUpdateResult:
        old, new = snapshot.status.value, new_status.value
        logger.info(f'[AUTO-STATUS] "{snapshot.title}" ({snapshot.id}): {old} -> {new}')

        try:
            # Conditional on the old status so a concurrent writer is not overwritten
            result = await self.db.execute(
                update(Competition)
                .where(Competition.id == snapshot.id, Competition.status == snapshot.status)
                .values(status=new_status, last_auto_status_update=now, updated_at=now)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                return StatusUpdateResult(
                    competition_id=str(snapshot.id),
                    title=snapshot.title,
                    old_status=old,
                    new_status=new,
                    success=False,
                    message="Failed to update competition status in database",
                )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f'[AUTO-STATUS] Error updating "{snapshot.title}": {e}', exc_info=True)
            return StatusUpdateResult(
                competition_id=str(snapshot.id),
                title=snapshot.title,
                old_status=old,
                new_status=new,
                success=False,
                message="Error updating status",
                error=str(e),
            )

        await self._after_transition(snapshot, new_status)

        return StatusUpdateResult(
            competition_id=str(snapshot.id),
            title=snapshot.title,
            old_status=old,
            new_status=new,
            success=True,
            message=f"Successfully updated from {old} to {new}",
        )

    async def _after_transition(self, snapshot: _Snapshot, new_status: CompetitionStatus) -> None:
        """Side effects of a committed transition. Failures are logged only."""
        if new_status == CompetitionStatus.COMPLETED:
            try:
                await ResultsService(self.db, self.notifications).sync_competition_results(snapshot.id)
            except Exception as e:
                await self.db.rollback()
                logger.error(f'[AUTO-STATUS] Result sync failed for "{snapshot.title}": {e}')

        if self.notifications and new_status in (CompetitionStatus.VOTING, CompetitionStatus.COMPLETED):
            try:
                await self.notifications.notify_status_change(
                    snapshot.id,
                    snapshot.title,
                    new_status,
                    snapshot.voting_end_date if new_status == CompetitionStatus.VOTING else None,
                )
            except Exception as e:
                await self.db.rollback()
                logger.error(f'[AUTO-STATUS] Notifications failed for "{snapshot.title}": {e}')

    async def preview(self, now: Optional[datetime] = None) -> List[StatusPreview]:
        """Expected-vs-current status of non-overridden competitions. Writes nothing."""
        now = now or datetime.utcnow()
        previews = []
        for snapshot in await self._snapshots(bypass_override=False):
            expected = compute_expected_status(
                now,
                snapshot.start_date,
                snapshot.end_date,
                snapshot.voting_end_date,
                snapshot.status,
            )
            if expected != snapshot.status:
                previews.append(
                    StatusPreview(
                        competition_id=str(snapshot.id),
                        title=snapshot.title,
                        current_status=snapshot.status,
                        expected_status=expected,
                        start_date=snapshot.start_date,
                        end_date=snapshot.end_date,
                        voting_end_date=snapshot.voting_end_date,
                    )
                )
        return previews


async def update_all_competition_statuses(
    db: AsyncSession,
    bypass_override: bool = False,
    notifications: Optional[NotificationService] = None,
) -> List[StatusUpdateResult]:
    return await CompetitionStatusUpdater(db, notifications).update_all(bypass_override)


async def preview_status_changes(db: AsyncSession) -> List[StatusPreview]:
    return await CompetitionStatusUpdater(db).preview()
