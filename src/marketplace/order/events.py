"""Domain events for the Order aggregate.

Raised by the CQRS aggregate alongside each state change and dispatched
to handlers in the same unit of work.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A client placed a delivery order and received its confirmation code."""

    __version__ = 1

    order_id = Identifier(required=True)
    client_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line dicts
    delivery_address = String(required=True)
    payment_method = String(required=True)
    base_amount = Integer(required=True)
    deposit_total = Integer(required=True)
    total_amount = Integer(required=True)
    client_commission_rate = Float(required=True)
    supplier_commission_rate = Float(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusAdvanced:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    actor_id = Identifier()
    advanced_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OfferSelected:
    """The client picked one supplier offer; the order now awaits payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    offer_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    base_amount = Integer(required=True)
    deposit_total = Integer(required=True)
    client_commission_amount = Integer(required=True)
    supplier_commission_amount = Integer(required=True)
    total_amount = Integer(required=True)
    supplier_net_amount = Integer(required=True)
    selected_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderPaid:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_method = String(required=True)
    transaction_reference = String(required=True)
    amount = Integer(required=True)
    paid_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderDelivered:
    """The client handed the courier the right confirmation code."""

    __version__ = 1

    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    supplier_net_amount = Integer(required=True)
    delivered_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(required=True)
    cancelled_by = Identifier()
    cancelled_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderLinkedToTransfer:
    __version__ = 1

    order_id = Identifier(required=True)
    transfer_id = Identifier(required=True)
    supplier_net_amount = Integer(required=True)


@marketplace.event(part_of="Order")
class OrderPayoutTransferred:
    """The supplier has been paid out for this order."""

    __version__ = 1

    order_id = Identifier(required=True)
    transfer_id = Identifier(required=True)
    transferred_at = DateTime(required=True)
