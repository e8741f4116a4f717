"""Business-rule and storage errors raised by the marketplace core.

Field-level validation keeps using Protean's ``ValidationError`` and an
unknown order surfaces as Protean's ``ObjectNotFoundError``. The classes
below cover the rules Protean cannot express on its own. Every error carries
a ``messages`` dict shaped like Protean's (``{"field": ["reason", ...]}``) so
API handlers render all of them the same way.

``StorageError`` is not a ``MarketplaceError``: callers may retry
it, but must never retry a business-rule rejection.
"""


class MarketplaceError(Exception):
    """Base class for business-rule rejections."""

    status_code = 400

    def __init__(self, messages: dict[str, list[str]]) -> None:
        self.messages = messages
        super().__init__(messages)

    @property
    def reason(self) -> str:
        return "; ".join(msg for msgs in self.messages.values() for msg in msgs)


class InvalidTransition(MarketplaceError):
    """The requested status edge does not exist in the order state machine."""

    status_code = 409


class Forbidden(MarketplaceError):
    """The actor's role may not drive the requested edge."""

    status_code = 403


class AlreadyTerminal(MarketplaceError):
    """The order is delivered or cancelled and can no longer change."""

    status_code = 409


class AlreadyCancelled(AlreadyTerminal):
    """A cancellation was requested for an order that is already cancelled."""


class InsufficientBalance(MarketplaceError):
    """A withdrawal asked for more than the available balance."""


class BelowMinimum(MarketplaceError):
    """A withdrawal is under the platform minimum."""


class StorageError(Exception):
    """The persistence backend failed; the operation had no effect and may be retried."""

    def __init__(self, message: str = "Storage backend unavailable, please try again") -> None:
        self.message = message
        super().__init__(message)
