"""Order aggregate (CQRS): a client's request for a crate delivery.

The order is placed with the products and crate choices the client wants,
collects competing supplier offers, locks in one offer's prices, is paid
through mobile money or card, and is delivered against a confirmation code
only the client knows. Once delivered it becomes payable to the supplier.

The persisted ``status`` doubles as the concurrency token: every command
names the status it expects to find, and a mismatch is a conflict rather
than a silent overwrite.

State Machine:
    PENDING → PENDING_OFFERS → OFFERS_RECEIVED → AWAITING_PAYMENT → PAID →
    ACCEPTED → PREPARING → DELIVERING → DELIVERED → AWAITING_RATING
    CANCELLED (from any state before DELIVERED)

``awaiting-client-validation`` is the legacy name of AWAITING_PAYMENT. Old
records may still carry it; it is read as AWAITING_PAYMENT and never written.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.order.events import (
    OfferSelected,
    OrderCancelled,
    OrderDelivered,
    OrderLinkedToTransfer,
    OrderPaid,
    OrderPayoutTransferred,
    OrderPlaced,
    OrderStatusAdvanced,
)
from marketplace.shared import crates
from marketplace.shared.confirmation_code import codes_match, generate_confirmation_code
from marketplace.shared.errors import (
    ConfirmationCodeMismatch,
    InvalidTransition,
    OrdersAlreadyTransferred,
    StatusConflict,
)
from marketplace.shared.settlement import SettlementBreakdown, compute_settlement


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PENDING_OFFERS = "pending-offers"
    OFFERS_RECEIVED = "offers-received"
    AWAITING_PAYMENT = "awaiting-payment"
    AWAITING_CLIENT_VALIDATION = "awaiting-client-validation"  # legacy alias
    PAID = "paid"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    AWAITING_RATING = "awaiting-rating"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    TRANSFERRED = "transferred"
    COMPLETED = "completed"


class PaymentMethod(Enum):
    ORANGE = "orange"
    MTN = "mtn"
    MOOV = "moov"
    WAVE = "wave"
    CARD = "card"
    CASH = "cash"


_STATUS_ALIASES = {OrderStatus.AWAITING_CLIENT_VALIDATION: OrderStatus.AWAITING_PAYMENT}

# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PENDING_OFFERS, OrderStatus.OFFERS_RECEIVED, OrderStatus.CANCELLED},
    OrderStatus.PENDING_OFFERS: {OrderStatus.OFFERS_RECEIVED, OrderStatus.CANCELLED},
    OrderStatus.OFFERS_RECEIVED: {OrderStatus.AWAITING_PAYMENT, OrderStatus.CANCELLED},
    OrderStatus.AWAITING_PAYMENT: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: {OrderStatus.ACCEPTED, OrderStatus.CANCELLED},
    OrderStatus.ACCEPTED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.DELIVERING, OrderStatus.CANCELLED},
    OrderStatus.DELIVERING: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.AWAITING_RATING},
    OrderStatus.AWAITING_RATING: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Targets only reachable through their dedicated operation
_GUARDED_TARGETS = {
    OrderStatus.OFFERS_RECEIVED: "submit a supplier offer",
    OrderStatus.AWAITING_PAYMENT: "accept a supplier offer",
    OrderStatus.PAID: "record the payment",
    OrderStatus.DELIVERED: "confirm delivery with the client's code",
    OrderStatus.CANCELLED: "cancel the order",
}

OPEN_FOR_OFFERS = {OrderStatus.PENDING, OrderStatus.PENDING_OFFERS, OrderStatus.OFFERS_RECEIVED}

# Timestamp written the first time the order enters a status
_STAMPED_ON_ENTRY = {
    OrderStatus.PAID: "paid_at",
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def canonical_status(value) -> OrderStatus:
    """Resolve a status value, folding legacy aliases onto their current name."""
    if isinstance(value, OrderStatus):
        status = value
    else:
        try:
            status = OrderStatus(value)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None
    return _STATUS_ALIASES.get(status, status)


def _check_lines(items):
    if not items:
        raise ValidationError({"items": ["An order needs at least one line"]})

    errors = []
    seen = set()
    for number, line in enumerate(items, start=1):
        if not line.get("product_id") or not line.get("crate_type"):
            errors.append(f"Line {number} needs a product and a crate type")
        elif line["product_id"] in seen:
            errors.append(f"Product {line['product_id']} appears more than once")
        seen.add(line.get("product_id"))

        quantity = line.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
            errors.append(f"Line {number} quantity must be a whole number of zero or more")
        price = line.get("unit_price", 0)
        if not isinstance(price, int) or isinstance(price, bool) or price < 0:
            errors.append(f"Line {number} unit price must be a whole amount of zero or more")
    if errors:
        raise ValidationError({"items": errors})


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class GeoPoint:
    """Where the courier should drop the crates."""

    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """One product line of the order.

    ``requested_quantity`` is what the client asked for and never changes.
    ``quantity`` and ``unit_price`` are overwritten in place with the
    accepted supplier's figures, which may be lower than requested.
    """

    line_number = Integer(required=True, min_value=1)
    product_id = Identifier(required=True)
    crate_type = String(required=True, max_length=20)
    requested_quantity = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=0)
    with_deposit = Boolean(default=False)
    unit_price = Integer(default=0, min_value=0)

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "product_id": str(self.product_id),
            "crate_type": self.crate_type,
            "requested_quantity": self.requested_quantity,
            "quantity": self.quantity,
            "with_deposit": bool(self.with_deposit),
            "unit_price": self.unit_price,
        }


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    client_id = Identifier(required=True)
    supplier_id = Identifier()
    status = String(max_length=30, choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    delivery_address = String(required=True, max_length=500)
    coordinates = ValueObject(GeoPoint)
    payment_method = String(max_length=20, choices=PaymentMethod, required=True)
    payment_status = String(max_length=20, choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_reference = String(max_length=255)

    # Rates are captured when the order is placed; later config changes
    # never reprice an order in flight.
    client_commission_rate = Float(required=True, min_value=0.0, max_value=100.0)
    supplier_commission_rate = Float(required=True, min_value=0.0, max_value=100.0)

    base_amount = Integer(default=0, min_value=0)
    deposit_total = Integer(default=0, min_value=0)
    client_commission_amount = Integer(default=0, min_value=0)
    supplier_commission_amount = Integer(default=0, min_value=0)
    total_amount = Integer(default=0, min_value=0)
    supplier_net_amount = Integer(default=0)

    delivery_confirmation_code = String(max_length=16)
    accepted_offer_id = Identifier()
    transfer_id = Identifier()
    cancellation_reason = String(max_length=500)
    cancelled_by = Identifier()

    created_at = DateTime()
    updated_at = DateTime()
    accepted_at = DateTime()
    paid_at = DateTime()
    delivered_at = DateTime()
    transferred_at = DateTime()
    cancelled_at = DateTime()

    @invariant.post
    def total_is_base_plus_deposits_plus_client_commission(self):
        if not self.accepted_offer_id:
            return
        expected = (self.base_amount or 0) + (self.deposit_total or 0) + (self.client_commission_amount or 0)
        if self.total_amount != expected:
            raise ValidationError(
                {"total_amount": ["Total must equal base amount plus deposits plus client commission"]}
            )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        client_id,
        items,
        delivery_address,
        payment_method,
        client_commission_rate,
        supplier_commission_rate,
        deposit_prices,
        coordinates=None,
    ):
        """Place a new order from the client's requested lines.

        Totals computed here are provisional; they are replaced by the
        accepted supplier offer's figures.
        """
        _check_lines(items)
        if not any(crates.line_quantity(line) > 0 for line in items):
            raise ValidationError({"items": ["At least one line must have a positive quantity"]})

        now = datetime.now(UTC)
        base_amount = sum(line.get("unit_price", 0) * line["quantity"] for line in items)
        deposits = crates.deposit_total(items, deposit_prices)
        breakdown = compute_settlement(base_amount, deposits, client_commission_rate, supplier_commission_rate)

        order = cls(
            client_id=client_id,
            status=OrderStatus.PENDING.value,
            items=[
                OrderItem(
                    line_number=number,
                    product_id=line["product_id"],
                    crate_type=line["crate_type"],
                    requested_quantity=line["quantity"],
                    quantity=line["quantity"],
                    with_deposit=bool(line.get("with_deposit", False)),
                    unit_price=line.get("unit_price", 0),
                )
                for number, line in enumerate(items, start=1)
            ],
            delivery_address=delivery_address,
            coordinates=GeoPoint(**coordinates) if coordinates else None,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            client_commission_rate=client_commission_rate,
            supplier_commission_rate=supplier_commission_rate,
            base_amount=breakdown.base_amount,
            deposit_total=breakdown.deposit_total,
            client_commission_amount=breakdown.client_commission,
            supplier_commission_amount=breakdown.supplier_commission,
            total_amount=breakdown.client_total,
            supplier_net_amount=breakdown.supplier_net,
            delivery_confirmation_code=generate_confirmation_code(),
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                client_id=str(client_id),
                items=json.dumps([item.to_dict() for item in order.sorted_items()]),
                delivery_address=delivery_address,
                payment_method=payment_method,
                base_amount=order.base_amount,
                deposit_total=order.deposit_total,
                total_amount=order.total_amount,
                client_commission_rate=client_commission_rate,
                supplier_commission_rate=supplier_commission_rate,
                placed_at=now,
            )
        )

        return order

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return canonical_status(self.status)

    def sorted_items(self):
        return sorted(self.items, key=lambda item: item.line_number)

    def crate_summary(self, crate_types=None):
        return crates.summarize(self.items, crate_types)

    def settlement(self) -> SettlementBreakdown:
        return SettlementBreakdown(
            base_amount=self.base_amount,
            deposit_total=self.deposit_total,
            client_commission=self.client_commission_amount,
            supplier_commission=self.supplier_commission_amount,
            client_total=self.total_amount,
            supplier_net=self.supplier_net_amount,
        )

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_status(self, expected):
        """Fail with a conflict unless the order is still in ``expected``."""
        expected = canonical_status(expected)
        current = self.current_status
        if current != expected:
            raise StatusConflict(expected=expected.value, actual=current.value)

    def _assert_can_transition(self, target, hint=None):
        current = self.current_status
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target.value, hint)

    def _stamp_once(self, field_name, when):
        if getattr(self, field_name) is None:
            setattr(self, field_name, when)

    def _enter(self, target, when):
        self.status = target.value
        self.updated_at = when
        if target in _STAMPED_ON_ENTRY:
            self._stamp_once(_STAMPED_ON_ENTRY[target], when)

    def advance(self, expected_status, next_status, actor_id=None):
        """Move along an unguarded edge of the lifecycle.

        Edges that carry their own preconditions (offers, payment, delivery,
        cancellation) are refused here and must go through their operation.
        """
        self._assert_status(expected_status)

        previous = self.current_status
        target = canonical_status(next_status)
        if target in _GUARDED_TARGETS:
            raise InvalidTransition(previous.value, target.value, f"{_GUARDED_TARGETS[target]} instead")
        self._assert_can_transition(target)

        now = datetime.now(UTC)
        self._enter(target, now)

        self.raise_(
            OrderStatusAdvanced(
                order_id=str(self.id),
                previous_status=previous.value,
                new_status=target.value,
                actor_id=str(actor_id) if actor_id else None,
                advanced_at=now,
            )
        )

    def open_for_offers(self):
        """Announce the order to suppliers."""
        self.advance(OrderStatus.PENDING, OrderStatus.PENDING_OFFERS)

    def receive_offer(self):
        """Register that a supplier has made an offer on this order."""
        previous = self.current_status
        if previous not in OPEN_FOR_OFFERS:
            raise InvalidTransition(previous.value, OrderStatus.OFFERS_RECEIVED.value, "order no longer takes offers")
        if previous == OrderStatus.OFFERS_RECEIVED:
            return

        now = datetime.now(UTC)
        self._enter(OrderStatus.OFFERS_RECEIVED, now)
        self.raise_(
            OrderStatusAdvanced(
                order_id=str(self.id),
                previous_status=previous.value,
                new_status=OrderStatus.OFFERS_RECEIVED.value,
                advanced_at=now,
            )
        )

    def select_offer(self, offer):
        """Lock in a supplier offer: its supplier, its lines and its totals."""
        self._assert_status(OrderStatus.OFFERS_RECEIVED)
        if str(offer.order_id) != str(self.id):
            raise ValidationError({"offer_id": [f"Offer {offer.id} was made on another order"]})

        now = datetime.now(UTC)
        offered = {str(line.product_id): line for line in offer.items}

        with atomic_change(self):
            for item in self.items:
                line = offered.get(str(item.product_id))
                item.quantity = line.quantity if line else 0
                if line:
                    item.unit_price = line.unit_price
                    item.with_deposit = bool(line.with_deposit)

            self.supplier_id = offer.supplier_id
            self.accepted_offer_id = str(offer.id)
            self.base_amount = offer.base_amount
            self.deposit_total = offer.deposit_total
            self.client_commission_amount = offer.client_commission_amount
            self.supplier_commission_amount = offer.supplier_commission_amount
            self.total_amount = offer.total_amount
            self.supplier_net_amount = offer.supplier_net_amount
            self._enter(OrderStatus.AWAITING_PAYMENT, now)

        self.raise_(
            OfferSelected(
                order_id=str(self.id),
                offer_id=str(offer.id),
                supplier_id=str(offer.supplier_id),
                base_amount=self.base_amount,
                deposit_total=self.deposit_total,
                client_commission_amount=self.client_commission_amount,
                supplier_commission_amount=self.supplier_commission_amount,
                total_amount=self.total_amount,
                supplier_net_amount=self.supplier_net_amount,
                selected_at=now,
            )
        )

    def record_payment(self, transaction_reference, payment_method=None, amount=None):
        """Record a successful payment from the payment provider."""
        if not transaction_reference or not str(transaction_reference).strip():
            raise ValidationError({"transaction_reference": ["Transaction reference is required"]})
        self._assert_status(OrderStatus.AWAITING_PAYMENT)
        if amount is not None and amount != self.total_amount:
            raise ValidationError({"amount": [f"Paid amount {amount} does not match order total {self.total_amount}"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            if payment_method:
                self.payment_method = payment_method
            self.payment_reference = str(transaction_reference).strip()
            self.payment_status = PaymentStatus.PAID.value
            self._enter(OrderStatus.PAID, now)

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                payment_method=self.payment_method,
                transaction_reference=self.payment_reference,
                amount=self.total_amount,
                paid_at=now,
            )
        )

    def confirm_delivery(self, code):
        """Complete the hand-over. ``code`` must already be length-checked."""
        self._assert_status(OrderStatus.DELIVERING)
        if not codes_match(code, self.delivery_confirmation_code):
            raise ConfirmationCodeMismatch()

        now = datetime.now(UTC)
        self._enter(OrderStatus.DELIVERED, now)

        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                supplier_id=str(self.supplier_id),
                supplier_net_amount=self.supplier_net_amount,
                delivered_at=now,
            )
        )

    def cancel(self, expected_status, reason, cancelled_by=None):
        self._assert_status(expected_status)
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["A cancellation reason is required"]})

        previous = self.current_status
        self._assert_can_transition(OrderStatus.CANCELLED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.cancellation_reason = reason.strip()
            self.cancelled_by = cancelled_by
            self._enter(OrderStatus.CANCELLED, now)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=previous.value,
                reason=self.cancellation_reason,
                cancelled_by=str(cancelled_by) if cancelled_by else None,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payout
    # -------------------------------------------------------------------
    def link_to_transfer(self, transfer_id):
        if self.transfer_id and str(self.transfer_id) != str(transfer_id):
            raise OrdersAlreadyTransferred([str(self.id)])

        self.transfer_id = str(transfer_id)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderLinkedToTransfer(
                order_id=str(self.id),
                transfer_id=str(transfer_id),
                supplier_net_amount=self.supplier_net_amount,
            )
        )

    def unlink_transfer(self, transfer_id):
        """Undo ``link_to_transfer`` when the transfer could not be written."""
        if self.transfer_id and str(self.transfer_id) == str(transfer_id):
            self.transfer_id = None
            self.updated_at = datetime.now(UTC)

    def mark_transferred(self, transfer_id):
        now = datetime.now(UTC)
        with atomic_change(self):
            self.payment_status = PaymentStatus.TRANSFERRED.value
            self._stamp_once("transferred_at", now)
            self.updated_at = now

        self.raise_(
            OrderPayoutTransferred(
                order_id=str(self.id),
                transfer_id=str(transfer_id),
                transferred_at=self.transferred_at,
            )
        )

    @property
    def is_settleable(self) -> bool:
        """Delivered and not yet part of any transfer."""
        return self.current_status == OrderStatus.DELIVERED and not self.transfer_id
