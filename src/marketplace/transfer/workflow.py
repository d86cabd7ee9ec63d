"""Transfer approval workflow: approve, complete, reject.

Completing a transfer marks each of its orders as paid out. A rejected
transfer keeps its order links, so its orders stay out of every later
transfer; an operator settles them by hand.
"""

from protean.fields import Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.transfer.transfer import Transfer
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="Transfer")
class ApproveTransfer:
    transfer_id = Identifier(required=True)
    approved_by = Identifier(required=True)


@marketplace.command(part_of="Transfer")
class CompleteTransfer:
    transfer_id = Identifier(required=True)
    completed_by = Identifier(required=True)


@marketplace.command(part_of="Transfer")
class RejectTransfer:
    transfer_id = Identifier(required=True)
    rejected_by = Identifier(required=True)
    reason = String(required=True, max_length=500)


def mark_orders_transferred(transfer):
    repo = current_domain.repository_for(Order)
    for order_id in transfer.linked_order_ids:
        order = repo.get(order_id)
        order.mark_transferred(transfer.id)
        repo.add(order)


@marketplace.command_handler(part_of=Transfer)
class TransferWorkflowHandler:
    @handle(ApproveTransfer)
    def approve_transfer(self, command):
        repo = current_domain.repository_for(Transfer)
        transfer = repo.get(command.transfer_id)
        transfer.approve(actor_id=command.approved_by)
        repo.add(transfer)

        logger.info("transfer_approved", transfer_id=str(transfer.id), approved_by=str(command.approved_by))

    @handle(CompleteTransfer)
    def complete_transfer(self, command):
        repo = current_domain.repository_for(Transfer)
        transfer = repo.get(command.transfer_id)
        transfer.complete(actor_id=command.completed_by)
        repo.add(transfer)
        mark_orders_transferred(transfer)

        logger.info(
            "transfer_completed",
            transfer_id=str(transfer.id),
            supplier_id=str(transfer.supplier_id),
            amount=transfer.amount,
        )

    @handle(RejectTransfer)
    def reject_transfer(self, command):
        repo = current_domain.repository_for(Transfer)
        transfer = repo.get(command.transfer_id)
        transfer.reject(actor_id=command.rejected_by, reason=command.reason)
        repo.add(transfer)

        logger.warning(
            "transfer_rejected",
            transfer_id=str(transfer.id),
            supplier_id=str(transfer.supplier_id),
            reason=command.reason,
        )
