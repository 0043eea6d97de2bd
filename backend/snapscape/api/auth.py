"""
Authentication API routes
Handles user registration, login, token refresh, email verification and password reset
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select
from datetime import datetime, timedelta

from snapscape.core.database import get_session
from snapscape.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_verification_token,
    validate_password_strength,
    rate_limit_signup,
    rate_limit_auth
)
from snapscape.core.dependencies import get_current_user
from snapscape.models.user import (
    User,
    UserRegister,
    UserLogin,
    UserResponse,
    TokenResponse,
    EmailRequest,
    PasswordReset,
    EmailVerificationToken,
    PasswordResetToken,
    RefreshToken,
)
from snapscape.core.config import settings
from snapscape.services.email_service import (
    EmailSender,
    get_email_sender,
    password_reset_email,
    verification_email,
)
from snapscape.services.recaptcha import verify_recaptcha

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_password(password: str) -> None:
    is_valid, error_message = validate_password_strength(password)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_message
        )


async def _issue_verification(session: AsyncSession, user: User, email_sender: EmailSender) -> None:
    token = generate_verification_token()
    session.add(EmailVerificationToken(
        user_id=user.id,
        token=token,
        expires_at=datetime.utcnow() + timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS)
    ))
    await session.commit()

    subject, html = verification_email(user.name, token)
    await email_sender.send(user.email, subject, html)
    logger.debug("Verification token issued for user_id=%s", user.id)


def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@rate_limit_signup
async def register(
    request: Request,
    user_data: UserRegister,
    session: AsyncSession = Depends(get_session),
    email_sender: EmailSender = Depends(get_email_sender)
):
    """
    Register a new user account

    - Verifies reCAPTCHA (when configured)
    - Creates user account
    - Sends verification email
    - Returns user data (email not verified yet)
    """
    client_ip = request.client.host if request.client else None
    if not await verify_recaptcha(user_data.recaptcha_token, client_ip):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="reCAPTCHA verification failed"
        )

    _check_password(user_data.password)

    result = await session.execute(
        select(User).where(User.email == user_data.email)
    )
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    new_user = User(
        name=user_data.name.strip(),
        email=user_data.email,
        password_hash=hash_password(user_data.password),
        mobile=user_data.mobile,
        country=user_data.country
    )

    session.add(new_user)
    await session.commit()
    await session.refresh(new_user)

    await _issue_verification(session, new_user, email_sender)

    return new_user


@router.post("/login", response_model=TokenResponse)
@rate_limit_auth
async def login(
    request: Request,
    credentials: UserLogin,
    response: Response,
    session: AsyncSession = Depends(get_session)
):
    """
    Login with email and password

    - Validates credentials
    - Returns access token
    - Sets refresh token in HTTP-only cookie
    """
    result = await session.execute(
        select(User).where(User.email == credentials.email.lower())
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    user.last_login = datetime.utcnow()

    access_token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    refresh_token = create_refresh_token(data={"sub": str(user.id)})

    session.add(RefreshToken(
        user_id=user.id,
        token=refresh_token,
        expires_at=datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    ))
    await session.commit()

    _set_refresh_cookie(response, refresh_token)

    return TokenResponse(
        access_token=access_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )


@router.get("/verify-email")
async def verify_email(
    token: str,
    session: AsyncSession = Depends(get_session)
):
    """
    Verify email address with token

    - Validates verification token
    - Marks the account verified
    """
    result = await session.execute(
        select(EmailVerificationToken).where(
            EmailVerificationToken.token == token,
            EmailVerificationToken.used == False
        )
    )
    token_record = result.scalar_one_or_none()

    if not token_record:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification token"
        )

    if token_record.expires_at < datetime.utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Verification token has expired"
        )

    token_record.used = True

    user = await session.get(User, token_record.user_id)
    user.is_verified = True
    user.verified_at = datetime.utcnow()

    await session.commit()

    return {
        "message": "Email verified successfully",
        "email": user.email
    }


@router.post("/resend-verification")
@rate_limit_signup
async def resend_verification(
    request: Request,
    data: EmailRequest,
    session: AsyncSession = Depends(get_session),
    email_sender: EmailSender = Depends(get_email_sender)
):
    """Send a fresh verification email. Answers the same whether or not the email exists."""
    result = await session.execute(select(User).where(User.email == data.email.lower()))
    user = result.scalar_one_or_none()

    if user and not user.is_verified:
        await _issue_verification(session, user, email_sender)

    return {"message": "If the account exists and is unverified, a verification email has been sent"}


@router.post("/refresh", response_model=TokenResponse)
async def refresh_access_token(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_session)
):
    """
    Refresh access token using refresh token from httpOnly cookie.

    - Reads refresh_token from cookie (not request body)
    - Validates and rotates the token
    - Issues new access token
    """
    refresh_token = request.cookies.get("refresh_token")
    if not refresh_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No refresh token provided"
        )

    try:
        payload = decode_token(refresh_token)
    except HTTPException:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

    if payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )

    result = await session.execute(
        select(RefreshToken).where(
            RefreshToken.token == refresh_token,
            RefreshToken.revoked == False
        )
    )
    token_record = result.scalar_one_or_none()

    if not token_record:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not found or revoked"
        )

    if token_record.expires_at < datetime.utcnow():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token has expired"
        )

    user = await session.get(User, token_record.user_id)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is not available"
        )

    new_access_token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    new_refresh_token = create_refresh_token(data={"sub": str(user.id)})

    # Rotate
    token_record.revoked = True
    session.add(RefreshToken(
        user_id=token_record.user_id,
        token=new_refresh_token,
        expires_at=datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    ))
    await session.commit()

    _set_refresh_cookie(response, new_refresh_token)

    return TokenResponse(
        access_token=new_access_token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )


@router.post("/logout")
async def logout(
    response: Response,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session)
):
    """
    Logout user

    - Revokes all refresh tokens for user
    - Clears refresh token cookie
    """
    result = await session.execute(
        select(RefreshToken).where(
            RefreshToken.user_id == current_user.id,
            RefreshToken.revoked == False
        )
    )
    for token in result.scalars().all():
        token.revoked = True

    await session.commit()

    response.delete_cookie("refresh_token")

    return {"message": "Logged out successfully"}


@router.post("/forgot-password")
@rate_limit_auth
async def forgot_password(
    request: Request,
    data: EmailRequest,
    session: AsyncSession = Depends(get_session),
    email_sender: EmailSender = Depends(get_email_sender)
):
    """Email a password reset link. Always answers 200 so emails cannot be probed."""
    result = await session.execute(select(User).where(User.email == data.email.lower()))
    user = result.scalar_one_or_none()

    if user and user.is_active:
        token = generate_verification_token()
        session.add(PasswordResetToken(
            user_id=user.id,
            token=token,
            expires_at=datetime.utcnow() + timedelta(hours=settings.PASSWORD_RESET_EXPIRE_HOURS)
        ))
        await session.commit()

        subject, html = password_reset_email(user.name, token)
        await email_sender.send(user.email, subject, html)
        logger.info("Password reset requested for user_id=%s", user.id)

    return {"message": "If an account exists for this email, a reset link has been sent"}


async def _valid_reset_token(session: AsyncSession, token: str) -> PasswordResetToken:
    result = await session.execute(
        select(PasswordResetToken).where(
            PasswordResetToken.token == token,
            PasswordResetToken.used == False
        )
    )
    token_record = result.scalar_one_or_none()
    if not token_record or token_record.expires_at < datetime.utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token"
        )
    return token_record


@router.get("/verify-reset-token")
async def verify_reset_token(
    token: str,
    session: AsyncSession = Depends(get_session)
):
    await _valid_reset_token(session, token)
    return {"valid": True}


@router.post("/reset-password")
async def reset_password(
    data: PasswordReset,
    session: AsyncSession = Depends(get_session)
):
    """Set a new password with a reset token; every refresh token is revoked."""
    token_record = await _valid_reset_token(session, data.token)
    _check_password(data.password)

    user = await session.get(User, token_record.user_id)
    user.password_hash = hash_password(data.password)
    user.updated_at = datetime.utcnow()
    token_record.used = True

    result = await session.execute(
        select(RefreshToken).where(
            RefreshToken.user_id == user.id,
            RefreshToken.revoked == False
        )
    )
    for refresh in result.scalars().all():
        refresh.revoked = True

    await session.commit()

    return {"message": "Password has been reset successfully"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current authenticated user information"""
    return current_user
