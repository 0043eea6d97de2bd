# Importing every table model here registers it on SQLModel.metadata

from .user import User, RefreshToken, EmailVerificationToken, PasswordResetToken
from .competition import Competition
from .submission import PhotoSubmission
from .rating import Rating
from .result import Result
from .notification import Notification, Setting
from .feedback import Feedback, ContactMessage
