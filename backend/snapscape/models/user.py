"""
User models: User, RefreshToken, EmailVerificationToken, PasswordResetToken
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from enum import Enum

from pydantic import EmailStr, field_validator


# ============================================================================
# ENUMS
# ============================================================================

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


# ============================================================================
# USER MODEL
# ============================================================================

class User(SQLModel, table=True):
    """Main user authentication and account model"""

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=50)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=255)

    role: UserRole = Field(default=UserRole.USER)
    is_verified: bool = Field(default=False)
    is_active: bool = Field(default=True)

    mobile: Optional[str] = Field(default=None, max_length=30)
    country: Optional[str] = Field(default=None, max_length=100)
    image: Optional[str] = None

    # Notification preferences
    notify_competition_reminders: bool = Field(default=True)
    notify_voting_open: bool = Field(default=True)
    notify_competition_completed: bool = Field(default=True)
    notify_new_competitions: bool = Field(default=True)
    notify_achievements: bool = Field(default=True)
    notify_weekly_digest: bool = Field(default=False)
    notify_marketing: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    last_login: Optional[datetime] = None
    verified_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# ============================================================================
# TOKEN MODELS
# ============================================================================

class RefreshToken(SQLModel, table=True):
    """JWT refresh tokens for session management"""

    __tablename__ = "refresh_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", ondelete="CASCADE")
    token: str = Field(unique=True, max_length=500)
    expires_at: datetime
    revoked: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class EmailVerificationToken(SQLModel, table=True):
    """Email verification tokens"""

    __tablename__ = "email_verification_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", ondelete="CASCADE")
    token: str = Field(unique=True, max_length=255)
    expires_at: datetime
    used: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class PasswordResetToken(SQLModel, table=True):
    """Single-use password reset tokens"""

    __tablename__ = "password_reset_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", ondelete="CASCADE")
    token: str = Field(unique=True, max_length=255)
    expires_at: datetime
    used: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)


# ============================================================================
# REQUEST/RESPONSE MODELS (Pydantic)
# ============================================================================

class UserRegister(SQLModel):
    """User registration request"""
    name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    mobile: Optional[str] = Field(default=None, max_length=30)
    country: Optional[str] = Field(default=None, max_length=100)
    recaptcha_token: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class UserLogin(SQLModel):
    """User login request"""
    email: str = Field(max_length=255)
    password: str = Field(max_length=128)


class EmailRequest(SQLModel):
    """Forgot-password / resend-verification request"""
    email: EmailStr


class PasswordReset(SQLModel):
    token: str
    password: str = Field(min_length=8, max_length=100)


class PasswordChange(SQLModel):
    current_password: str = Field(max_length=128)
    new_password: str = Field(min_length=8, max_length=100)


class UserResponse(SQLModel):
    """User response (without sensitive data)"""
    id: UUID
    name: str
    email: str
    role: UserRole
    is_verified: bool
    is_active: bool
    mobile: Optional[str] = None
    country: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime
    verified_at: Optional[datetime] = None


class UserProfileUpdate(SQLModel):
    """User profile update request"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    mobile: Optional[str] = Field(default=None, max_length=30)
    country: Optional[str] = Field(default=None, max_length=100)
    image: Optional[str] = None


class NotificationPreferences(SQLModel):
    """Notification preference flags, all optional on update"""
    competition_reminders: Optional[bool] = None
    voting_open: Optional[bool] = None
    competition_completed: Optional[bool] = None
    new_competitions: Optional[bool] = None
    achievement_notifications: Optional[bool] = None
    weekly_digest: Optional[bool] = None
    marketing_emails: Optional[bool] = None


# Maps NotificationPreferences fields onto User columns
PREFERENCE_COLUMNS = {
    "competition_reminders": "notify_competition_reminders",
    "voting_open": "notify_voting_open",
    "competition_completed": "notify_competition_completed",
    "new_competitions": "notify_new_competitions",
    "achievement_notifications": "notify_achievements",
    "weekly_digest": "notify_weekly_digest",
    "marketing_emails": "notify_marketing",
}


def preferences_of(user: User) -> NotificationPreferences:
    return NotificationPreferences(
        **{field: getattr(user, column) for field, column in PREFERENCE_COLUMNS.items()}
    )


class AdminUserUpdate(SQLModel):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class AdminPasswordReset(SQLModel):
    new_password: str = Field(min_length=8, max_length=100)


class TokenResponse(SQLModel):
    """JWT token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
