"""Domain exceptions raised by the ledger, issuer and redemption services.

Routers let these propagate; ``main.py`` registers a single handler that turns
them into ``{"message": ..., "reason": ...}`` JSON responses.
"""
from typing import Optional

from bulklink.services.link_validator import LinkReasons


class BulkLinkError(Exception):
    """Base class for errors with an HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(BulkLinkError):
    """Entity is missing, or the caller does not own it."""

    status_code = 404
    default_message = "Not found"


class NotEligible(NotFound):
    """Bulk purchase cannot back a new link (not owned, inactive or empty)."""

    default_message = "Bulk purchase not found or no remaining units"


class Gone(BulkLinkError):
    """Link exists but can no longer be used."""

    status_code = 410
    default_message = "This link is no longer available for use"

    def __init__(self, reasons: LinkReasons, message: Optional[str] = None):
        self.reasons = reasons
        super().__init__(message)


class ValidationError(BulkLinkError):
    """Missing or malformed request fields."""

    status_code = 400
    default_message = "Missing required fields"


class ConflictRace(BulkLinkError):
    """A conditional update matched no rows after the pre-check passed.

    Internal only: the redemption engine converts it to ``Gone``.
    """

    status_code = 410
    default_message = "Link was used concurrently"


class LedgerInvariantError(BulkLinkError):
    """A requested inventory change would break 0 <= remaining <= purchased."""

    status_code = 400
    default_message = "Quantity remaining must be between 0 and quantity purchased"


class Unexpected(BulkLinkError):
    """Datastore or network failure."""

    status_code = 500
    default_message = "Internal server error"
