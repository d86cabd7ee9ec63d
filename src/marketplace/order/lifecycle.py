"""Order lifecycle commands: publishing, generic advancement, cancellation.

Every command carries the status the caller last saw. The handler compares
it with the stored status before touching the order, so two actors racing
on the same order cannot both win.
"""

from protean.fields import Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="Order")
class PublishOrder:
    """Open the order to supplier offers."""

    order_id = Identifier(required=True)


@marketplace.command(part_of="Order")
class AdvanceOrderStatus:
    order_id = Identifier(required=True)
    expected_status = String(required=True, max_length=30)
    next_status = String(required=True, max_length=30)
    actor_id = Identifier()


@marketplace.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    expected_status = String(required=True, max_length=30)
    reason = String(required=True, max_length=500)
    cancelled_by = Identifier()


@marketplace.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(PublishOrder)
    def publish_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.open_for_offers()
        repo.add(order)

    @handle(AdvanceOrderStatus)
    def advance_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.advance(
            expected_status=command.expected_status,
            next_status=command.next_status,
            actor_id=command.actor_id,
        )
        repo.add(order)

        logger.info(
            "order_status_advanced",
            order_id=str(order.id),
            status=order.status,
            actor_id=command.actor_id,
        )
        return order.status

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(
            expected_status=command.expected_status,
            reason=command.reason,
            cancelled_by=command.cancelled_by,
        )
        repo.add(order)

        logger.info("order_cancelled", order_id=str(order.id), reason=command.reason)
