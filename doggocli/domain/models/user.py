"""Domain models related to authentication and the signed-in user."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .common import AuthToken, UserId


@dataclass(frozen=True)
class User:
    """Immutable snapshot of a user profile as returned by the backend."""
    id: UserId
    username: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Session:
    """The authenticated identity context held while logged in."""
    token: AuthToken
    user: User

    def __repr__(self) -> str:
        # Keep the token out of logs
        return f"Session(user={self.user.username!r}, token=***)"


@dataclass
class LoginRequest:
    username: str
    password: str


@dataclass
class RegisterRequest:
    username: str
    email: str
    password: str
    password_confirmation: str
