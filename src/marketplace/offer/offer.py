"""SupplierOffer aggregate (CQRS): a supplier's answer to an open order.

A supplier may serve fewer crates than requested, drop lines entirely,
switch a line between deposit and crate exchange, and set its own unit
prices. Totals are computed with the commission rates captured on the
order, so accepting the offer copies them onto the order unchanged.

State Machine:
    PENDING → ACCEPTED
    PENDING → REJECTED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, Text

from marketplace.domain import marketplace
from marketplace.offer.events import OfferAccepted, OfferRejected, OfferSubmitted
from marketplace.shared import crates
from marketplace.shared.errors import InvalidTransition
from marketplace.shared.settlement import compute_settlement


class OfferStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


_VALID_TRANSITIONS = {
    OfferStatus.PENDING: {OfferStatus.ACCEPTED, OfferStatus.REJECTED},
    OfferStatus.ACCEPTED: set(),
    OfferStatus.REJECTED: set(),
}


@marketplace.entity(part_of="SupplierOffer")
class OfferItem:
    product_id = Identifier(required=True)
    crate_type = String(required=True, max_length=20)
    requested_quantity = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=0)
    with_deposit = Boolean(default=False)
    unit_price = Integer(default=0, min_value=0)

    def to_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "crate_type": self.crate_type,
            "requested_quantity": self.requested_quantity,
            "quantity": self.quantity,
            "with_deposit": bool(self.with_deposit),
            "unit_price": self.unit_price,
        }


def _offered_lines(order, modified_items):
    """Match the supplier's lines to the order's, one per order line.

    Lines the supplier leaves out are offered at quantity zero.
    """
    requested = {str(item.product_id): item for item in order.sorted_items()}
    offered = {}
    errors = []

    for line in modified_items:
        product_id = str(line.get("product_id") or "")
        if product_id not in requested:
            errors.append(f"Product {product_id or '?'} is not part of order {order.id}")
            continue
        if product_id in offered:
            errors.append(f"Product {product_id} is offered more than once")
            continue

        item = requested[product_id]
        quantity = line.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
            errors.append(f"Quantity for {product_id} must be a whole number of zero or more")
            continue
        if quantity > item.requested_quantity:
            errors.append(f"Quantity for {product_id} exceeds the {item.requested_quantity} requested")
            continue

        unit_price = line.get("unit_price", item.unit_price)
        if not isinstance(unit_price, int) or isinstance(unit_price, bool) or unit_price < 0:
            errors.append(f"Unit price for {product_id} must be a whole amount of zero or more")
            continue

        offered[product_id] = {
            "product_id": product_id,
            "crate_type": item.crate_type,
            "requested_quantity": item.requested_quantity,
            "quantity": quantity,
            "with_deposit": bool(line.get("with_deposit", item.with_deposit)),
            "unit_price": unit_price,
        }

    if errors:
        raise ValidationError({"items": errors})

    lines = []
    for product_id, item in requested.items():
        lines.append(
            offered.get(product_id)
            or {
                "product_id": product_id,
                "crate_type": item.crate_type,
                "requested_quantity": item.requested_quantity,
                "quantity": 0,
                "with_deposit": bool(item.with_deposit),
                "unit_price": item.unit_price,
            }
        )

    if not any(line["quantity"] > 0 for line in lines):
        raise ValidationError({"items": ["An offer must serve at least one crate"]})
    return lines


@marketplace.aggregate
class SupplierOffer:
    order_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    status = String(max_length=20, choices=OfferStatus, default=OfferStatus.PENDING.value)
    items = HasMany(OfferItem)
    message = Text()

    base_amount = Integer(default=0, min_value=0)
    deposit_total = Integer(default=0, min_value=0)
    client_commission_amount = Integer(default=0, min_value=0)
    supplier_commission_amount = Integer(default=0, min_value=0)
    total_amount = Integer(default=0, min_value=0)
    supplier_net_amount = Integer(default=0)

    created_at = DateTime()
    updated_at = DateTime()
    accepted_at = DateTime()
    rejected_at = DateTime()

    @classmethod
    def submit(cls, order, supplier_id, modified_items, deposit_prices, message=None):
        """Price the supplier's version of ``order``."""
        if not supplier_id:
            raise ValidationError({"supplier_id": ["Supplier is required"]})

        lines = _offered_lines(order, modified_items or [])
        base_amount = sum(line["unit_price"] * line["quantity"] for line in lines)
        breakdown = compute_settlement(
            base_amount,
            crates.deposit_total(lines, deposit_prices),
            order.client_commission_rate,
            order.supplier_commission_rate,
        )

        now = datetime.now(UTC)
        offer = cls(
            order_id=str(order.id),
            supplier_id=supplier_id,
            status=OfferStatus.PENDING.value,
            items=[OfferItem(**line) for line in lines],
            message=message,
            base_amount=breakdown.base_amount,
            deposit_total=breakdown.deposit_total,
            client_commission_amount=breakdown.client_commission,
            supplier_commission_amount=breakdown.supplier_commission,
            total_amount=breakdown.client_total,
            supplier_net_amount=breakdown.supplier_net,
            created_at=now,
            updated_at=now,
        )

        offer.raise_(
            OfferSubmitted(
                offer_id=str(offer.id),
                order_id=str(order.id),
                supplier_id=str(supplier_id),
                items=json.dumps(lines),
                base_amount=offer.base_amount,
                deposit_total=offer.deposit_total,
                total_amount=offer.total_amount,
                supplier_net_amount=offer.supplier_net_amount,
                submitted_at=now,
            )
        )

        return offer

    def _assert_can_transition(self, target):
        current = OfferStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target.value)

    def accept(self):
        self._assert_can_transition(OfferStatus.ACCEPTED)

        now = datetime.now(UTC)
        self.status = OfferStatus.ACCEPTED.value
        self.accepted_at = now
        self.updated_at = now

        self.raise_(
            OfferAccepted(
                offer_id=str(self.id),
                order_id=str(self.order_id),
                supplier_id=str(self.supplier_id),
                accepted_at=now,
            )
        )

    def reject(self):
        self._assert_can_transition(OfferStatus.REJECTED)

        now = datetime.now(UTC)
        self.status = OfferStatus.REJECTED.value
        self.rejected_at = now
        self.updated_at = now

        self.raise_(
            OfferRejected(
                offer_id=str(self.id),
                order_id=str(self.order_id),
                supplier_id=str(self.supplier_id),
                rejected_at=now,
            )
        )
