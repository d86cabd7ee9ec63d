"""Domain events for the SupplierOffer aggregate."""

from protean.fields import DateTime, Identifier, Integer, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="SupplierOffer")
class OfferSubmitted:
    """A supplier answered an order with the quantities and prices it can serve."""

    __version__ = 1

    offer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line dicts
    base_amount = Integer(required=True)
    deposit_total = Integer(required=True)
    total_amount = Integer(required=True)
    supplier_net_amount = Integer(required=True)
    submitted_at = DateTime(required=True)


@marketplace.event(part_of="SupplierOffer")
class OfferAccepted:
    __version__ = 1

    offer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    accepted_at = DateTime(required=True)


@marketplace.event(part_of="SupplierOffer")
class OfferRejected:
    """Raised for every competing offer when the client picks another one."""

    __version__ = 1

    offer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    rejected_at = DateTime(required=True)
