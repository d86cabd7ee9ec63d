"""Application tests for PlaceOrder."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder


def _place(**overrides):
    defaults = {
        "client_id": "client-001",
        "items": json.dumps(
            [
                {"product_id": "beer-33cl", "crate_type": "C24", "quantity": 1, "with_deposit": True, "unit_price": 12000},
            ]
        ),
        "delivery_address": "Marcory, Zone 4",
        "payment_method": "wave",
    }
    defaults.update(overrides)
    return current_domain.process(PlaceOrder(**defaults), asynchronous=False)


class TestPlaceOrder:
    def test_persists_order(self):
        order_id = _place()
        order = current_domain.repository_for(Order).get(order_id)

        assert order.status == "pending"
        assert order.base_amount == 12000
        assert order.deposit_total == 3000
        assert order.total_amount == 15960
        assert order.supplier_net_amount == 14760
        assert len(order.items) == 1

    def test_captures_configured_rates(self, monkeypatch):
        from marketplace.config import get_settings

        monkeypatch.setenv("MARKETPLACE_CLIENT_COMMISSION_RATE", "10")
        monkeypatch.setenv("MARKETPLACE_SUPPLIER_COMMISSION_RATE", "5")
        get_settings.cache_clear()

        order = current_domain.repository_for(Order).get(_place())

        assert order.client_commission_rate == 10.0
        assert order.supplier_commission_rate == 5.0
        assert order.client_commission_amount == 1200

    def test_rates_do_not_move_with_later_config(self, monkeypatch):
        from marketplace.config import get_settings

        order_id = _place()
        monkeypatch.setenv("MARKETPLACE_CLIENT_COMMISSION_RATE", "20")
        get_settings.cache_clear()

        order = current_domain.repository_for(Order).get(order_id)
        assert order.client_commission_rate == 8.0

    def test_coordinates_are_stored(self):
        order_id = _place(latitude=5.3364, longitude=-4.0267)
        order = current_domain.repository_for(Order).get(order_id)

        assert order.coordinates.latitude == 5.3364

    def test_items_must_be_json(self):
        with pytest.raises(ValidationError) as exc:
            _place(items="not json")
        assert "items" in exc.value.messages

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValidationError):
            _place(payment_method="paypal")

    def test_find_by_client(self):
        _place(client_id="client-777")
        _place(client_id="client-777")
        _place(client_id="client-888")

        orders = current_domain.repository_for(Order).find_by_client("client-777")
        assert len(orders) == 2
