"""RecordPayment: the payment provider confirmed the client's payment.

Arrives from the provider webhook. The reference is mandatory and, when
the provider reports an amount, it must match the order total exactly.
"""

from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="Order")
class RecordPayment:
    order_id = Identifier(required=True)
    transaction_reference = String(required=True, max_length=255)
    payment_method = String(max_length=20)
    amount = Integer(min_value=0)


@marketplace.command_handler(part_of=Order)
class RecordPaymentHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment(
            transaction_reference=command.transaction_reference,
            payment_method=command.payment_method,
            amount=command.amount,
        )
        repo.add(order)

        logger.info(
            "payment_recorded",
            order_id=str(order.id),
            payment_method=order.payment_method,
            amount=order.total_amount,
        )
