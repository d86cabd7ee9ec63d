"""ConfirmDelivery: the client hands the courier its confirmation code.

The submitted code is trimmed and length-checked before the order is
even loaded. A wrong code leaves the order in ``delivering``; the stored
code never appears in errors or logs.
"""

from protean.fields import Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.shared.confirmation_code import normalize_confirmation_code
from marketplace.shared.errors import ConfirmationCodeMismatch
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="Order")
class ConfirmDelivery:
    order_id = Identifier(required=True)
    confirmation_code = String(required=True, max_length=64)
    courier_id = Identifier()


@marketplace.command_handler(part_of=Order)
class ConfirmDeliveryHandler:
    @handle(ConfirmDelivery)
    def confirm_delivery(self, command):
        code = normalize_confirmation_code(command.confirmation_code)

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        try:
            order.confirm_delivery(code)
        except ConfirmationCodeMismatch:
            logger.warning(
                "delivery_code_rejected",
                order_id=str(order.id),
                courier_id=command.courier_id,
            )
            raise
        repo.add(order)

        logger.info("order_delivered", order_id=str(order.id), supplier_id=str(order.supplier_id))
