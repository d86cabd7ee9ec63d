"""PlaceOrder: a client asks for a crate delivery.

Commission rates are read from settings at this moment and frozen on the
order. The client gets back the order id; the confirmation code travels
with the order record and is shown to the client only.
"""

import json

from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.config import get_settings
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    client_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, crate_type, quantity, with_deposit, unit_price}
    delivery_address = String(required=True, max_length=500)
    payment_method = String(required=True, max_length=20)
    latitude = Float()
    longitude = Float()


def _parse_items(raw):
    try:
        items = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError({"items": ["Items must be a JSON list"]}) from None
    if not isinstance(items, list) or not all(isinstance(line, dict) for line in items):
        raise ValidationError({"items": ["Items must be a JSON list of objects"]})
    return items


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        settings = get_settings()

        coordinates = None
        if command.latitude is not None and command.longitude is not None:
            coordinates = {"latitude": command.latitude, "longitude": command.longitude}

        order = Order.place(
            client_id=command.client_id,
            items=_parse_items(command.items),
            delivery_address=command.delivery_address,
            payment_method=command.payment_method,
            client_commission_rate=settings.client_commission_rate,
            supplier_commission_rate=settings.supplier_commission_rate,
            deposit_prices=settings.crate_deposit_prices,
            coordinates=coordinates,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            client_id=str(command.client_id),
            total_amount=order.total_amount,
        )
        return str(order.id)
