"""Transfer aggregate (CQRS): one payout batch to one supplier.

The amount is the sum of the supplier net amounts of its orders, frozen
when the transfer is opened. Orders are tied to transfers through
``TransferOrder`` links; an order with a link can never join another
transfer, whatever becomes of the first one.

State Machine:
    PENDING → APPROVED → COMPLETED
    PENDING → COMPLETED  (direct completion, or approval disabled)
    PENDING → REJECTED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.shared.errors import InvalidTransition
from marketplace.transfer.events import (
    TransferApproved,
    TransferCompleted,
    TransferCreated,
    TransferRejected,
)


class TransferStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"


class TransferMethod(Enum):
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    CASH = "cash"


_VALID_TRANSITIONS = {
    TransferStatus.PENDING: {TransferStatus.APPROVED, TransferStatus.COMPLETED, TransferStatus.REJECTED},
    TransferStatus.APPROVED: {TransferStatus.COMPLETED},
    TransferStatus.COMPLETED: set(),  # Terminal
    TransferStatus.REJECTED: set(),  # Terminal
}


@marketplace.aggregate
class Transfer:
    supplier_id = Identifier(required=True)
    supplier_name = String(max_length=255)
    amount = Integer(required=True, min_value=0)
    order_count = Integer(required=True, min_value=1)
    order_ids = Text(required=True)  # JSON list, in request order
    transfer_method = String(max_length=20, choices=TransferMethod, default=TransferMethod.BANK_TRANSFER.value)
    status = String(max_length=20, choices=TransferStatus, default=TransferStatus.PENDING.value)
    notes = Text()
    metadata = Text()  # JSON object, free-form

    created_by = Identifier(required=True)
    approved_by = Identifier()
    completed_by = Identifier()
    rejected_by = Identifier()
    rejection_reason = String(max_length=500)
    approval_skipped = Boolean(default=False)

    created_at = DateTime()
    updated_at = DateTime()
    approved_at = DateTime()
    completed_at = DateTime()
    rejected_at = DateTime()

    @invariant.post
    def order_count_matches_order_ids(self):
        if self.order_ids and len(json.loads(self.order_ids)) != self.order_count:
            raise ValidationError({"order_count": ["Order count must match the linked orders"]})

    @classmethod
    def open(
        cls,
        supplier_id,
        orders,
        created_by,
        transfer_method=TransferMethod.BANK_TRANSFER.value,
        supplier_name=None,
        notes=None,
        metadata=None,
    ):
        """Open a pending transfer for ``orders`` (already checked eligible)."""
        if not orders:
            raise ValidationError({"order_ids": ["A transfer needs at least one order"]})

        now = datetime.now(UTC)
        order_ids = [str(order.id) for order in orders]

        transfer = cls(
            supplier_id=supplier_id,
            supplier_name=supplier_name,
            amount=sum(order.supplier_net_amount for order in orders),
            order_count=len(order_ids),
            order_ids=json.dumps(order_ids),
            transfer_method=transfer_method,
            status=TransferStatus.PENDING.value,
            notes=notes,
            metadata=json.dumps(metadata) if metadata else None,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

        transfer.raise_(
            TransferCreated(
                transfer_id=str(transfer.id),
                supplier_id=str(supplier_id),
                amount=transfer.amount,
                order_ids=transfer.order_ids,
                transfer_method=transfer.transfer_method,
                created_by=str(created_by),
                created_at=now,
            )
        )

        return transfer

    @property
    def linked_order_ids(self) -> list[str]:
        return json.loads(self.order_ids) if self.order_ids else []

    def _assert_can_transition(self, target):
        current = TransferStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target.value)

    def approve(self, actor_id):
        self._assert_can_transition(TransferStatus.APPROVED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = TransferStatus.APPROVED.value
            self.approved_by = actor_id
            self.approved_at = now
            self.updated_at = now

        self.raise_(TransferApproved(transfer_id=str(self.id), approved_by=str(actor_id), approved_at=now))

    def complete(self, actor_id, approval_skipped=False):
        self._assert_can_transition(TransferStatus.COMPLETED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = TransferStatus.COMPLETED.value
            self.completed_by = actor_id
            self.completed_at = now
            self.approval_skipped = approval_skipped
            self.updated_at = now

        self.raise_(
            TransferCompleted(
                transfer_id=str(self.id),
                supplier_id=str(self.supplier_id),
                amount=self.amount,
                completed_by=str(actor_id),
                approval_skipped=approval_skipped,
                completed_at=now,
            )
        )

    def reject(self, actor_id, reason):
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A rejection reason is required"]})
        self._assert_can_transition(TransferStatus.REJECTED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = TransferStatus.REJECTED.value
            self.rejected_by = actor_id
            self.rejected_at = now
            self.rejection_reason = reason.strip()
            self.updated_at = now

        self.raise_(
            TransferRejected(
                transfer_id=str(self.id),
                rejected_by=str(actor_id),
                reason=self.rejection_reason,
                rejected_at=now,
            )
        )


@marketplace.aggregate
class TransferOrder:
    """Link between a transfer and one of its orders.

    At most one link ever exists per order. It is what the idempotency
    check looks up before any new transfer is opened.
    """

    transfer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_amount = Integer(required=True, min_value=0)
    created_at = DateTime()

    @classmethod
    def link(cls, transfer_id, order_id, order_amount):
        return cls(
            transfer_id=str(transfer_id),
            order_id=str(order_id),
            order_amount=order_amount,
            created_at=datetime.now(UTC),
        )
