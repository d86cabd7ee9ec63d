"""Marketplace error taxonomy.

Malformed input raises Protean's ``ValidationError`` and unknown records
raise ``ObjectNotFoundError``; both are mapped to HTTP by Protean itself.
The errors below cover what is left: stale status tokens, business rules
and broken payout linkage. Each carries a ``kind`` the API layer turns
into a status code, and ``messages`` shaped like ``ValidationError.messages``.
"""

from contextlib import contextmanager

from protean.exceptions import ExpectedVersionError


class MarketplaceError(Exception):
    kind = "business_rule"

    def __init__(self, messages: dict[str, list[str]]):
        super().__init__(messages)
        self.messages = messages


class StatusConflict(MarketplaceError):
    """The record is no longer in the status the caller read."""

    kind = "conflict"

    def __init__(self, expected: str, actual: str, field: str = "status"):
        self.expected = expected
        self.actual = actual
        super().__init__({field: [f"Expected {expected} but found {actual}"]})


class ConcurrentUpdate(StatusConflict):
    """Another request saved the record between this request's read and write."""

    def __init__(self, record: str, identifier: str):
        self.record = record
        self.identifier = str(identifier)
        self.expected = self.actual = None
        MarketplaceError.__init__(
            self,
            {"status": [f"{record} {identifier} was changed by another request, reload it and retry"]},
        )


@contextmanager
def conflict_on_stale_write(record: str, identifier):
    """Turn Protean's optimistic-locking failure into a ``ConcurrentUpdate``."""
    try:
        yield
    except ExpectedVersionError as exc:
        raise ConcurrentUpdate(record, identifier) from exc


class InvalidTransition(MarketplaceError):
    def __init__(self, current: str, target: str, hint: str | None = None):
        self.current = current
        self.target = target
        message = f"Cannot transition from {current} to {target}"
        if hint:
            message = f"{message}: {hint}"
        super().__init__({"status": [message]})


class ConfirmationCodeMismatch(MarketplaceError):
    def __init__(self):
        super().__init__({"confirmation_code": ["Code incorrect"]})


class OrdersAlreadyTransferred(MarketplaceError):
    kind = "conflict"

    def __init__(self, order_ids: list[str]):
        self.order_ids = list(order_ids)
        super().__init__({"order_ids": [f"Orders already in transfer: {', '.join(self.order_ids)}"]})


class IneligibleOrders(MarketplaceError):
    def __init__(self, order_ids: list[str]):
        self.order_ids = list(order_ids)
        super().__init__(
            {"order_ids": [f"Orders not delivered or not owned by supplier: {', '.join(self.order_ids)}"]}
        )


class TransferIntegrityError(MarketplaceError):
    """Transfer linkage could not be written; the transfer was rolled back."""

    kind = "integrity"

    def __init__(self, transfer_id: str, reason: str):
        self.transfer_id = transfer_id
        super().__init__({"transfer": [f"Could not link orders to transfer {transfer_id}: {reason}"]})
