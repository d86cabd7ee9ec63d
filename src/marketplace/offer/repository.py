"""Repository for the SupplierOffer aggregate."""

from marketplace.domain import marketplace
from marketplace.offer.offer import OfferStatus, SupplierOffer
from marketplace.shared.errors import conflict_on_stale_write


@marketplace.repository(part_of=SupplierOffer)
class SupplierOfferRepository:
    def add(self, offer: SupplierOffer) -> SupplierOffer:
        with conflict_on_stale_write("Offer", offer.id):
            return super().add(offer)

    def find_for_order(self, order_id: str) -> list[SupplierOffer]:
        """Offers made on the order, newest first."""
        offers = self._dao.query.filter(order_id=str(order_id)).all().items
        return sorted(offers, key=lambda offer: offer.created_at, reverse=True)

    def find_pending_for_order(self, order_id: str) -> list[SupplierOffer]:
        return [offer for offer in self.find_for_order(order_id) if offer.status == OfferStatus.PENDING.value]

    def find_pending_from_supplier(self, order_id: str, supplier_id: str) -> list[SupplierOffer]:
        return [
            offer
            for offer in self.find_pending_for_order(order_id)
            if str(offer.supplier_id) == str(supplier_id)
        ]
