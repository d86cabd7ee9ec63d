"""AcceptOffer: the client picks one supplier offer.

In one unit of work: the order takes the offer's supplier, lines and
totals and moves to ``awaiting-payment``; the chosen offer is accepted and
every other pending offer on the order is rejected. The order must still
be in ``offers-received``, which is what stops two acceptances racing.
"""

from protean.exceptions import ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.offer.offer import SupplierOffer
from marketplace.order.order import Order
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="SupplierOffer")
class AcceptOffer:
    order_id = Identifier(required=True)
    offer_id = Identifier(required=True)
    client_id = Identifier()


@marketplace.command_handler(part_of=SupplierOffer)
class AcceptOfferHandler:
    @handle(AcceptOffer)
    def accept_offer(self, command):
        order_repo = current_domain.repository_for(Order)
        offer_repo = current_domain.repository_for(SupplierOffer)

        order = order_repo.get(command.order_id)
        if command.client_id and str(order.client_id) != str(command.client_id):
            raise ValidationError({"client_id": ["Only the client who placed the order can accept an offer"]})

        offer = offer_repo.get(command.offer_id)
        if str(offer.order_id) != str(order.id):
            raise ValidationError({"offer_id": [f"Offer {offer.id} was made on another order"]})

        order.select_offer(offer)
        offer.accept()

        competing = [other for other in offer_repo.find_pending_for_order(order.id) if other.id != offer.id]
        for other in competing:
            other.reject()
            offer_repo.add(other)

        offer_repo.add(offer)
        order_repo.add(order)

        logger.info(
            "offer_accepted",
            order_id=str(order.id),
            offer_id=str(offer.id),
            supplier_id=str(offer.supplier_id),
            rejected_offers=len(competing),
        )
        return str(offer.id)
