import json

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from marketplace.offer.acceptance import AcceptOffer
from marketplace.offer.submission import SubmitOffer
from marketplace.order.delivery import ConfirmDelivery
from marketplace.order.lifecycle import AdvanceOrderStatus, PublishOrder
from marketplace.order.order import Order
from marketplace.order.payment import RecordPayment
from marketplace.order.placement import PlaceOrder

DEFAULT_LINES = [
    {"product_id": "beer-33cl", "crate_type": "C24", "quantity": 2, "with_deposit": True, "unit_price": 5000},
    {"product_id": "soda-30cl", "crate_type": "C12", "quantity": 1, "with_deposit": False, "unit_price": 2000},
]


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


@pytest.fixture
def place_order():
    """Place an order through the command and return its id."""

    def _place(client_id="client-001", items=None, payment_method="orange"):
        return current_domain.process(
            PlaceOrder(
                client_id=client_id,
                items=json.dumps(items or DEFAULT_LINES),
                delivery_address="Cocody, Rue des Jardins",
                payment_method=payment_method,
            ),
            asynchronous=False,
        )

    return _place


@pytest.fixture
def submit_offer():
    def _submit(order_id, supplier_id="supplier-001", items=None):
        if items is None:
            items = [{"product_id": line["product_id"], "quantity": line["quantity"]} for line in DEFAULT_LINES]
        return current_domain.process(
            SubmitOffer(order_id=order_id, supplier_id=supplier_id, items=json.dumps(items)),
            asynchronous=False,
        )

    return _submit


@pytest.fixture
def paid_order(place_order, submit_offer):
    """Walk an order up to ``paid`` with one accepted offer."""

    def _paid(supplier_id="supplier-001", client_id="client-001"):
        order_id = place_order(client_id=client_id)
        current_domain.process(PublishOrder(order_id=order_id), asynchronous=False)
        offer_id = submit_offer(order_id, supplier_id=supplier_id)
        current_domain.process(AcceptOffer(order_id=order_id, offer_id=offer_id), asynchronous=False)
        current_domain.process(
            RecordPayment(order_id=order_id, transaction_reference=f"OM-{order_id[:8]}"),
            asynchronous=False,
        )
        return order_id

    return _paid


@pytest.fixture
def delivering_order(paid_order):
    def _delivering(supplier_id="supplier-001"):
        order_id = paid_order(supplier_id=supplier_id)
        for expected, target in (("paid", "accepted"), ("accepted", "preparing"), ("preparing", "delivering")):
            current_domain.process(
                AdvanceOrderStatus(order_id=order_id, expected_status=expected, next_status=target),
                asynchronous=False,
            )
        return order_id

    return _delivering


@pytest.fixture
def delivered_order(delivering_order):
    def _delivered(supplier_id="supplier-001"):
        order_id = delivering_order(supplier_id=supplier_id)
        code = current_domain.repository_for(Order).get(order_id).delivery_confirmation_code
        current_domain.process(
            ConfirmDelivery(order_id=order_id, confirmation_code=code),
            asynchronous=False,
        )
        return order_id

    return _delivered
