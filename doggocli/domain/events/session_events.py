"""Domain Events for session transitions.

The session is owned by the SessionManager; the UI and other observers learn
about login, refresh, logout and forced invalidation through these events.
"""

from dataclasses import dataclass, field
import time
from typing import Literal, Optional

from doggocli.domain.events.api_events import DomainEvent
from doggocli.domain.models.user import User

SessionChangeReason = Literal["login", "refresh", "logout", "invalidated"]

@dataclass
class SessionChanged(DomainEvent):
    """Event triggered whenever the session is established, refreshed or cleared."""
    reason: SessionChangeReason
    user: Optional[User]
    timestamp: float = field(default_factory=time.time)
