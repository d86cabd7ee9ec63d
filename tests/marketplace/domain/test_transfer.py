"""Tests for the Transfer aggregate: opening and the approval workflow."""

import json
from types import SimpleNamespace

import pytest
from protean.exceptions import ValidationError

from marketplace.shared.errors import InvalidTransition
from marketplace.transfer.transfer import Transfer, TransferOrder, TransferStatus


def _orders(*amounts):
    return [SimpleNamespace(id=f"order-{i}", supplier_net_amount=amount) for i, amount in enumerate(amounts, start=1)]


def _open(*amounts):
    transfer = Transfer.open(
        supplier_id="supplier-001",
        orders=_orders(*amounts),
        created_by="treasurer-001",
        supplier_name="Brasserie du Plateau",
        notes="Weekly payout",
        metadata={"batch": "2026-W42"},
    )
    transfer._events.clear()
    return transfer


class TestOpen:
    def test_amount_is_sum_of_supplier_net(self):
        transfer = _open(14760, 9800, 220)

        assert transfer.amount == 24780
        assert transfer.order_count == 3
        assert transfer.linked_order_ids == ["order-1", "order-2", "order-3"]
        assert transfer.status == TransferStatus.PENDING.value
        assert transfer.transfer_method == "bank_transfer"
        assert json.loads(transfer.metadata) == {"batch": "2026-W42"}

    def test_raises_transfer_created(self):
        transfer = Transfer.open(supplier_id="supplier-001", orders=_orders(100), created_by="treasurer-001")
        assert transfer._events[-1].__class__.__name__ == "TransferCreated"

    def test_needs_orders(self):
        with pytest.raises(ValidationError):
            Transfer.open(supplier_id="supplier-001", orders=[], created_by="treasurer-001")

    def test_unknown_method_rejected(self):
        with pytest.raises(ValidationError):
            Transfer.open(
                supplier_id="supplier-001",
                orders=_orders(100),
                created_by="treasurer-001",
                transfer_method="cheque",
            )


class TestWorkflow:
    def test_approve_then_complete(self):
        transfer = _open(1000)
        transfer.approve("finance-001")
        transfer.complete("finance-002")

        assert transfer.status == TransferStatus.COMPLETED.value
        assert transfer.approved_by == "finance-001"
        assert transfer.completed_by == "finance-002"
        assert not transfer.approval_skipped
        assert [e.__class__.__name__ for e in transfer._events] == ["TransferApproved", "TransferCompleted"]

    def test_complete_directly_from_pending(self):
        transfer = _open(1000)
        transfer.complete("finance-001", approval_skipped=True)

        assert transfer.status == TransferStatus.COMPLETED.value
        assert transfer.approval_skipped

    def test_reject_requires_reason(self):
        transfer = _open(1000)
        with pytest.raises(ValidationError):
            transfer.reject("finance-001", reason="")
        assert transfer.status == TransferStatus.PENDING.value

    def test_reject(self):
        transfer = _open(1000)
        transfer.reject("finance-001", reason="Bank details missing")

        assert transfer.status == TransferStatus.REJECTED.value
        assert transfer.rejection_reason == "Bank details missing"

    @pytest.mark.parametrize(
        "setup,action",
        [
            (["approve"], "approve"),
            (["approve"], "reject"),
            (["complete"], "approve"),
            (["complete"], "reject"),
            (["complete"], "complete"),
            (["reject"], "approve"),
            (["reject"], "complete"),
        ],
    )
    def test_illegal_transitions(self, setup, action):
        transfer = _open(1000)
        for step in setup:
            if step == "reject":
                transfer.reject("finance-001", reason="No")
            else:
                getattr(transfer, step)("finance-001")
        status = transfer.status

        with pytest.raises(InvalidTransition):
            if action == "reject":
                transfer.reject("finance-002", reason="Again")
            else:
                getattr(transfer, action)("finance-002")

        assert transfer.status == status


class TestTransferOrder:
    def test_link(self):
        link = TransferOrder.link("transfer-001", "order-001", 14760)

        assert link.transfer_id == "transfer-001"
        assert link.order_id == "order-001"
        assert link.order_amount == 14760
        assert link.created_at is not None
