"""
Photo submission API routes
Upload, browse, archive, moderate and delete competition entries.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlmodel.ext.asyncio.session import AsyncSession

from snapscape.core.database import get_session
from snapscape.core.dependencies import get_current_active_user, require_admin
from snapscape.models.submission import (
    SubmissionArchiveUpdate,
    SubmissionResponse,
    SubmissionStatusUpdate,
)
from snapscape.models.user import User
from snapscape.services.image_store import CloudinaryImageStore, get_image_store
from snapscape.services.submission_service import SubmissionService

router = APIRouter()


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    competition_id: UUID = Form(...),
    title: str = Form(...),
    description: Optional[str] = Form(None),
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
    image_store: CloudinaryImageStore = Depends(get_image_store),
):
    """
    Submit a photo to an active competition

    - Multipart form: competition_id, title, description, image
    - Enforces the per-user submission limit
    - New submissions start as pending until an admin approves them
    """
    content = await image.read()
    service = SubmissionService(session, image_store)
    return await service.create_submission(
        current_user,
        competition_id,
        title,
        description,
        content,
        image.filename or "upload",
        image.content_type,
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: UUID,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    return await SubmissionService(session).get(submission_id)


@router.patch("/{submission_id}/archive", response_model=SubmissionResponse)
async def archive_submission(
    submission_id: UUID,
    data: SubmissionArchiveUpdate,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
):
    return await SubmissionService(session).set_archived(submission_id, current_user, data.archived)


@router.patch("/{submission_id}/status", response_model=SubmissionResponse)
async def moderate_submission(
    submission_id: UUID,
    data: SubmissionStatusUpdate,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Approve or reject a submission (admin only)"""
    return await SubmissionService(session).moderate(submission_id, data.status)


@router.delete("/{submission_id}")
async def delete_submission(
    submission_id: UUID,
    current_user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_session),
    image_store: CloudinaryImageStore = Depends(get_image_store),
):
    await SubmissionService(session, image_store).delete_submission(submission_id, current_user)
    return {"message": "Submission deleted"}
