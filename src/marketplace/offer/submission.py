"""SubmitOffer: a supplier bids on an open order.

The order must still be taking offers. A supplier has at most one pending
offer per order; to change it, the supplier waits for the client's choice.
The first offer moves the order to ``offers-received``.
"""

import json

from protean.exceptions import ValidationError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.config import get_settings
from marketplace.domain import marketplace
from marketplace.offer.offer import SupplierOffer
from marketplace.order.order import Order
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="SupplierOffer")
class SubmitOffer:
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, unit_price, with_deposit}
    message = Text()


@marketplace.command_handler(part_of=SupplierOffer)
class SubmitOfferHandler:
    @handle(SubmitOffer)
    def submit_offer(self, command):
        try:
            modified_items = json.loads(command.items)
        except (TypeError, ValueError):
            raise ValidationError({"items": ["Items must be a JSON list"]}) from None
        if not isinstance(modified_items, list) or not all(isinstance(line, dict) for line in modified_items):
            raise ValidationError({"items": ["Items must be a JSON list of objects"]})

        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)
        order.receive_offer()

        offer_repo = current_domain.repository_for(SupplierOffer)
        if offer_repo.find_pending_from_supplier(command.order_id, command.supplier_id):
            raise ValidationError({"supplier_id": ["Supplier already has a pending offer on this order"]})

        offer = SupplierOffer.submit(
            order=order,
            supplier_id=command.supplier_id,
            modified_items=modified_items,
            deposit_prices=get_settings().crate_deposit_prices,
            message=command.message,
        )
        offer_repo.add(offer)
        order_repo.add(order)

        logger.info(
            "offer_submitted",
            offer_id=str(offer.id),
            order_id=str(order.id),
            supplier_id=str(command.supplier_id),
            total_amount=offer.total_amount,
        )
        return str(offer.id)
