"""
Exceptions raised by the pricing and grading engine.
"""
from typing import Optional


class MarketplaceError(Exception):
    """Base class for marketplace domain errors."""


class ValidationError(MarketplaceError):
    """Malformed or out-of-domain input. ``field`` names the offending field."""

    def __init__(self, field: Optional[str], message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}" if field else message)


class InvalidStatusTransition(MarketplaceError):
    """Work order status change not allowed by the lifecycle."""

    def __init__(self, old_status: Optional[str], new_status: str):
        self.old_status = old_status
        self.new_status = new_status
        super().__init__(f"Cannot change status from {old_status} to {new_status}")
