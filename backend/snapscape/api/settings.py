"""
Site settings API routes (single row, id=1)
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import get_session
from snapscape.core.dependencies import require_admin
from snapscape.models.notification import Setting, SettingResponse, SettingUpdate
from snapscape.models.user import User

router = APIRouter()


async def get_or_create_settings(session: AsyncSession) -> Setting:
    site_settings = await session.get(Setting, 1)
    if not site_settings:
        site_settings = Setting(id=1)
        session.add(site_settings)
        await session.commit()
    return site_settings


@router.get("", response_model=SettingResponse)
async def get_settings(session: AsyncSession = Depends(get_session)):
    return await get_or_create_settings(session)


@router.patch("", response_model=SettingResponse)
async def update_settings(
    data: SettingUpdate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    site_settings = await get_or_create_settings(session)
    for field, value in data.model_dump(exclude_none=True).items():
        setattr(site_settings, field, value)
    site_settings.updated_at = datetime.utcnow()
    await session.commit()
    return site_settings
