"""
Scheduled job endpoints
Competition status updates triggered by an external scheduler (cron secret)
or manually by an admin.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import get_session
from snapscape.core.dependencies import get_notification_service, require_admin, verify_cron_secret
from snapscape.models.competition import StatusUpdateRequest
from snapscape.models.user import User
from snapscape.services.notification_service import NotificationService
from snapscape.services.status_updater import CompetitionStatusUpdater

logger = logging.getLogger(__name__)

router = APIRouter()


def _summary(results) -> dict:
    updated = [r for r in results if r.success]
    failed = [r for r in results if not r.success]
    return {
        "success": True,
        "timestamp": datetime.utcnow().isoformat(),
        "updated": len(updated),
        "failed": len(failed),
        "results": results,
    }


@router.get("/update-competition-statuses", dependencies=[Depends(verify_cron_secret)])
async def cron_update_statuses(
    session: AsyncSession = Depends(get_session),
    notifications: NotificationService = Depends(get_notification_service),
):
    """Scheduler entry point. Requires `Authorization: Bearer <CRON_SECRET>`."""
    results = await CompetitionStatusUpdater(session, notifications).update_all()
    logger.info(f"Cron status update: {len(results)} competitions changed")
    return _summary(results)


@router.post("/update-competition-statuses")
async def manual_update_statuses(
    data: Optional[StatusUpdateRequest] = None,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
    notifications: NotificationService = Depends(get_notification_service),
):
    """Run the status update now (admin). bypass_manual_override includes pinned competitions."""
    results = await CompetitionStatusUpdater(session, notifications).update_all(
        bypass_override=bool(data and data.bypass_manual_override)
    )
    logger.info(f"Manual status update by {admin.id}: {len(results)} competitions changed")
    return _summary(results)


@router.get("/preview-competition-statuses")
async def preview_statuses(
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Transitions the next run would make, without writing anything."""
    previews = await CompetitionStatusUpdater(session).preview()
    return {"count": len(previews), "changes": previews}
