"""
Tier-specific exceptions.
"""

from core.exceptions import ConflictError, NotFoundError, ValidationError


class InvalidTier(ValidationError):
    """Raised when a tier name is not one of the configured tiers."""

    default_error_code: str = "INVALID_TIER"


class UserNotFound(NotFoundError):
    """Raised when the user to classify does not exist."""

    default_error_code: str = "USER_NOT_FOUND"


class TierAssignmentConflict(ConflictError):
    """
    Raised when a first classification lost its insert race and the
    winning row cannot be read back.
    """

    default_error_code: str = "CONCURRENT_MODIFICATION"
