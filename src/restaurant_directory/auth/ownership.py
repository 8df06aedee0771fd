"""Ownership check shared by every mutating restaurant and menu operation."""

import logging
from enum import Enum

from restaurant_directory.auth.identity import ActingIdentity
from restaurant_directory.errors import UnauthorizedError
from restaurant_directory.models.restaurant_models import Restaurant
from restaurant_directory.observability.metrics import record_authorization_denial

logger = logging.getLogger(__name__)


class AccessDecision(str, Enum):
    """Outcome of an ownership check."""

    ALLOWED = "allowed"
    DENIED = "denied"


def authorize(restaurant: Restaurant, acting: ActingIdentity | None) -> AccessDecision:
    """Decide whether the acting identity owns the restaurant.

    Args:
        restaurant: Restaurant being mutated
        acting: Caller, or None when unauthenticated

    Returns:
        AccessDecision.ALLOWED for the owner, AccessDecision.DENIED otherwise
    """
    if acting is None or acting.user_id != restaurant.owner_id:
        return AccessDecision.DENIED
    return AccessDecision.ALLOWED


def ensure_owner(restaurant: Restaurant | None, acting: ActingIdentity | None, action: str) -> Restaurant:
    """Raise unless the acting identity owns the restaurant.

    A missing restaurant is denied with the same error as a foreign one.

    Args:
        restaurant: Restaurant being mutated, or None if it was not found
        acting: Caller, or None when unauthenticated
        action: Human-readable action for the error message

    Returns:
        Restaurant: The authorized restaurant

    Raises:
        UnauthorizedError: If the caller is not the owner
    """
    if restaurant is None or authorize(restaurant, acting) is AccessDecision.DENIED:
        logger.warning(
            f"Denied attempt to {action}",
            extra={"acting_id": acting.user_id if acting else None},
        )
        record_authorization_denial(action)
        raise UnauthorizedError(f"Not authorized to {action}")
    return restaurant
