"""
Domain exceptions shared by services and routers.
Each carries the HTTP status it maps to; main.py renders them as {"detail": message}.
"""


class SnapScapeError(Exception):
    """Base exception for domain failures"""
    status_code = 500

    def __init__(self, message: str = "An error occurred"):
        super().__init__(message)
        self.message = message


class UnauthorizedError(SnapScapeError):
    """Missing or invalid principal"""
    status_code = 401


class ForbiddenError(SnapScapeError):
    """Insufficient role or ownership"""
    status_code = 403


class NotFoundError(SnapScapeError):
    """Referenced entity does not exist"""
    status_code = 404


class ValidationError(SnapScapeError):
    """Malformed input, out-of-range value or missing field"""
    status_code = 400


class ConflictError(SnapScapeError):
    """Entity is not in an eligible state, or a unique key was violated"""
    status_code = 409


class LeaderboardUnavailableError(ConflictError):
    """Leaderboard requested before the competition's scores are final"""
    status_code = 400


class InternalError(SnapScapeError):
    """Unexpected store or collaborator failure"""
    status_code = 500
