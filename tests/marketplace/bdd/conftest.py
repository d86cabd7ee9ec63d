"""Shared BDD fixtures and step definitions for the marketplace."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from marketplace.order.events import (
    OfferSelected,
    OrderCancelled,
    OrderDelivered,
    OrderPaid,
    OrderPlaced,
    OrderStatusAdvanced,
)
from marketplace.offer.offer import SupplierOffer
from marketplace.order.order import Order
from marketplace.shared.errors import MarketplaceError

_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderStatusAdvanced": OrderStatusAdvanced,
    "OfferSelected": OfferSelected,
    "OrderPaid": OrderPaid,
    "OrderDelivered": OrderDelivered,
    "OrderCancelled": OrderCancelled,
}

PRICES = {"C24": 3000, "C12": 3000, "C12V": 4000, "C6": 2000}


@pytest.fixture()
def error():
    """Container for the error raised by the last action."""
    return {"exc": None}


def place(quantity=2, product_id="beer-33cl", unit_price=5000):
    order = Order.place(
        client_id="client-bdd",
        items=[
            {
                "product_id": product_id,
                "crate_type": "C24",
                "quantity": quantity,
                "with_deposit": True,
                "unit_price": unit_price,
            }
        ],
        delivery_address="Marcory, Zone 4",
        payment_method="orange",
        client_commission_rate=8.0,
        supplier_commission_rate=2.0,
        deposit_prices=PRICES,
    )
    order._events.clear()
    return order


def _awaiting_payment():
    order = place()
    order.receive_offer()
    offer = SupplierOffer.submit(
        order=order,
        supplier_id="supplier-bdd",
        modified_items=[{"product_id": "beer-33cl", "quantity": 2}],
        deposit_prices=PRICES,
    )
    order.select_offer(offer)
    order._events.clear()
    return order


def _paid():
    order = _awaiting_payment()
    order.record_payment("OM-BDD-1")
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a placed order for {quantity:d} crates of "{product_id}" at {unit_price:d} each with deposit'),
    target_fixture="order",
)
def placed_order(quantity, product_id, unit_price):
    return place(quantity=quantity, product_id=product_id, unit_price=unit_price)


@given("an order that has been paid", target_fixture="order")
def order_that_has_been_paid():
    return _paid()


@given("an order out for delivery", target_fixture="order")
def order_out_for_delivery():
    order = _paid()
    order.advance("paid", "accepted")
    order.advance("accepted", "preparing")
    order.advance("preparing", "delivering")
    order._events.clear()
    return order


@given(parsers.cfparse('an order stored as "{status}"'), target_fixture="order")
def order_stored_as(status):
    order = _awaiting_payment()
    order.status = status
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse("the order total is {amount:d}"))
def order_total_is(order, amount):
    assert order.total_amount == amount


@then("the order action fails with a validation error")
def order_action_fails_validation(error):
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse('the order action fails with a "{kind}" error'))
def order_action_fails_with_kind(error, kind):
    assert isinstance(error["exc"], MarketplaceError)
    assert error["exc"].kind == kind


@then(parsers.cfparse("a {event_type} event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(isinstance(e, event_cls) for e in order._events)
