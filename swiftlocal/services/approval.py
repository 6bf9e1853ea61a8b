"""Vendor approval gate.

A vendor may change anything (products, store profile, order status) only
when an admin has approved it and it is not suspended. The gate fails fast
before any write; the store's own authorization is still expected to
refuse the same calls.
"""
import logging
from typing import Optional

from swiftlocal.core.errors import ApprovalRequired, VendorSuspended
from swiftlocal.db.models import ApprovalStatus, Profile

logger = logging.getLogger(__name__)

PENDING_NOTICE = (
    "Your vendor account is under review. Once approved by our team, "
    "you will be able to start selling."
)
REJECTED_NOTICE = (
    "Your vendor application was rejected. Please contact support for more "
    "information or to appeal the decision."
)
SUSPENDED_NOTICE = (
    "Your store has been suspended by an administrator. Your dashboard is "
    "read-only until it is reactivated."
)


def approval_state(profile: Optional[Profile]) -> ApprovalStatus:
    # vendors without a decision yet are treated as awaiting review
    if profile is None or not profile.approval_status:
        return ApprovalStatus.PENDING
    try:
        return ApprovalStatus(profile.approval_status)
    except ValueError:
        logger.warning("vendor %s has unknown approval status %r", profile.user_id, profile.approval_status)
        return ApprovalStatus.PENDING


def is_blocked(profile: Optional[Profile]) -> bool:
    """Pending or rejected vendors only get the informational view."""
    return approval_state(profile) is not ApprovalStatus.APPROVED


def can_mutate(profile: Optional[Profile]) -> bool:
    return approval_state(profile) is ApprovalStatus.APPROVED and bool(profile.is_active)


def blocking_notice(profile: Optional[Profile]) -> Optional[str]:
    state = approval_state(profile)
    if state is ApprovalStatus.PENDING:
        return PENDING_NOTICE
    if state is ApprovalStatus.REJECTED:
        return REJECTED_NOTICE
    if not profile.is_active:
        return SUSPENDED_NOTICE
    return None


def ensure_approved(profile: Optional[Profile]) -> None:
    state = approval_state(profile)
    if state is not ApprovalStatus.APPROVED:
        raise ApprovalRequired(blocking_notice(profile))


def ensure_can_mutate(profile: Optional[Profile]) -> None:
    ensure_approved(profile)
    if not profile.is_active:
        logger.warning("suspended vendor %s attempted a write", profile.user_id)
        raise VendorSuspended(SUSPENDED_NOTICE)
