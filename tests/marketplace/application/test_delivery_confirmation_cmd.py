"""Application tests for ConfirmDelivery."""

from unittest.mock import MagicMock, patch

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from marketplace.order.delivery import ConfirmDelivery, ConfirmDeliveryHandler
from marketplace.order.order import Order
from marketplace.shared.errors import ConfirmationCodeMismatch, StatusConflict


def _code(order_id):
    return current_domain.repository_for(Order).get(order_id).delivery_confirmation_code


def _wrong_code(order_id):
    return "ZZZZZZZZ" if _code(order_id) != "ZZZZZZZZ" else "YYYYYYYY"


class TestConfirmDelivery:
    def test_right_code_delivers(self, delivering_order):
        order_id = delivering_order()
        current_domain.process(
            ConfirmDelivery(order_id=order_id, confirmation_code=f"  {_code(order_id).lower()} "),
            asynchronous=False,
        )

        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == "delivered"
        assert order.delivered_at is not None

    def test_wrong_code_leaves_order_delivering(self, delivering_order):
        order_id = delivering_order()

        with pytest.raises(ConfirmationCodeMismatch) as exc:
            current_domain.process(
                ConfirmDelivery(order_id=order_id, confirmation_code=_wrong_code(order_id)),
                asynchronous=False,
            )

        assert exc.value.messages == {"confirmation_code": ["Code incorrect"]}
        assert current_domain.repository_for(Order).get(order_id).status == "delivering"

    def test_courier_can_retry_after_a_wrong_code(self, delivering_order):
        order_id = delivering_order()
        with pytest.raises(ConfirmationCodeMismatch):
            current_domain.process(
                ConfirmDelivery(order_id=order_id, confirmation_code=_wrong_code(order_id)),
                asynchronous=False,
            )

        current_domain.process(ConfirmDelivery(order_id=order_id, confirmation_code=_code(order_id)), asynchronous=False)
        assert current_domain.repository_for(Order).get(order_id).status == "delivered"

    def test_order_not_out_for_delivery_fails_closed(self, paid_order):
        order_id = paid_order()
        with pytest.raises(StatusConflict):
            current_domain.process(ConfirmDelivery(order_id=order_id, confirmation_code=_code(order_id)), asynchronous=False)
        assert current_domain.repository_for(Order).get(order_id).status == "paid"

    def test_second_confirmation_conflicts(self, delivered_order):
        order_id = delivered_order()
        with pytest.raises(StatusConflict):
            current_domain.process(ConfirmDelivery(order_id=order_id, confirmation_code=_code(order_id)), asynchronous=False)


class TestCodeFormatCheckedFirst:
    @pytest.mark.parametrize("code", ["ABC", "ABCDEFGHJK", " ABCDEFG "])
    def test_wrong_length_never_reads_the_order(self, code):
        with patch("marketplace.order.delivery.current_domain") as mock_domain:
            mock_domain.repository_for = MagicMock()

            with pytest.raises(ValidationError) as exc:
                ConfirmDeliveryHandler().confirm_delivery(ConfirmDelivery(order_id="order-001", confirmation_code=code))

        assert exc.value.messages["confirmation_code"] == ["Code must be 8 characters"]
        mock_domain.repository_for.assert_not_called()
