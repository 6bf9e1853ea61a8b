"""Explicit per-login session passed into every core operation."""
import logging
from dataclasses import dataclass, field
from typing import Optional

from swiftlocal.core.errors import NotAuthenticated
from swiftlocal.db.models import Profile, Role, UserRole
from swiftlocal.store.gateway import DataGateway

logger = logging.getLogger(__name__)


@dataclass
class MarketplaceSession:
    user_id: str
    role: Role
    profile: Optional[Profile] = None
    closed: bool = field(default=False, repr=False)

    def require_active(self) -> "MarketplaceSession":
        if self.closed:
            raise NotAuthenticated("Session has ended. Please log in again.")
        return self

    def close(self) -> None:
        self.closed = True
        self.profile = None


def open_session(gateway: DataGateway, user_id: str) -> MarketplaceSession:
    """Resolve the role assignment and profile of ``user_id``.

    A user without a role assignment has no usable session.
    """
    if not user_id:
        raise NotAuthenticated()
    assignment = gateway.first(UserRole, user_id=user_id)
    if assignment is None:
        logger.warning("no role assignment for user %s", user_id)
        raise NotAuthenticated("User not found")
    profile = gateway.first(Profile, user_id=user_id)
    return MarketplaceSession(user_id=user_id, role=Role(assignment.role), profile=profile)


def require_session(session: Optional[MarketplaceSession]) -> MarketplaceSession:
    if session is None:
        raise NotAuthenticated("Please log in to continue.")
    return session.require_active()
