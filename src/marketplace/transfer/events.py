"""Domain events for the Transfer aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Transfer")
class TransferCreated:
    """A payout batch was opened for a supplier's delivered orders."""

    __version__ = 1

    transfer_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    amount = Integer(required=True)
    order_ids = Text(required=True)  # JSON: list of order ids
    transfer_method = String(required=True)
    created_by = Identifier(required=True)
    created_at = DateTime(required=True)


@marketplace.event(part_of="Transfer")
class TransferApproved:
    __version__ = 1

    transfer_id = Identifier(required=True)
    approved_by = Identifier(required=True)
    approved_at = DateTime(required=True)


@marketplace.event(part_of="Transfer")
class TransferCompleted:
    """Money has left the platform for the supplier."""

    __version__ = 1

    transfer_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    amount = Integer(required=True)
    completed_by = Identifier(required=True)
    approval_skipped = Boolean(default=False)
    completed_at = DateTime(required=True)


@marketplace.event(part_of="Transfer")
class TransferRejected:
    __version__ = 1

    transfer_id = Identifier(required=True)
    rejected_by = Identifier(required=True)
    reason = String(required=True)
    rejected_at = DateTime(required=True)
