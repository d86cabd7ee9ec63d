"""Tests for the crate deposit ledger."""

from marketplace.order.order import OrderItem
from marketplace.shared import crates

PRICES = {"C24": 3000, "C12": 3000, "C12V": 4000, "C6": 2000}


class TestSummarize:
    def test_every_known_type_is_present_and_zero_filled(self):
        summary = crates.summarize([], PRICES.keys())

        assert set(summary) == {"C24", "C12", "C12V", "C6"}
        assert all(count.with_deposit == 0 and count.to_return == 0 for count in summary.values())

    def test_none_input_is_an_empty_order(self):
        summary = crates.summarize(None, PRICES.keys())
        assert crates.crates_to_return(summary) == 0

    def test_deposit_and_exchange_are_counted_separately(self):
        lines = [
            {"product_id": "beer", "crate_type": "C24", "quantity": 3, "with_deposit": True},
            {"product_id": "lager", "crate_type": "C24", "quantity": 2, "with_deposit": False},
            {"product_id": "soda", "crate_type": "C6", "quantity": 4},
        ]
        summary = crates.summarize(lines, PRICES.keys())

        assert summary["C24"].with_deposit == 3
        assert summary["C24"].to_return == 2
        assert summary["C6"].to_return == 4
        assert summary["C12"].total == 0

    def test_malformed_lines_are_skipped(self):
        lines = [
            None,
            {"crate_type": "C24", "quantity": 5, "with_deposit": True},  # no product
            {"product_id": "wine", "crate_type": "CARTON", "quantity": 5},  # unknown crate
            {"product_id": "beer", "quantity": 5},  # no crate type
            {"product_id": "soda", "crate_type": "C12", "quantity": 1},
        ]
        summary = crates.summarize(lines, PRICES.keys())

        assert sum(count.total for count in summary.values()) == 1
        assert summary["C12"].to_return == 1

    def test_bad_quantities_count_as_zero(self):
        lines = [
            {"product_id": "a", "crate_type": "C24", "with_deposit": True},
            {"product_id": "b", "crate_type": "C24", "quantity": "lots", "with_deposit": True},
            {"product_id": "c", "crate_type": "C24", "quantity": -4, "with_deposit": True},
            {"product_id": "d", "crate_type": "C24", "quantity": "2", "with_deposit": True},
        ]
        summary = crates.summarize(lines, PRICES.keys())

        assert summary["C24"].with_deposit == 2

    def test_counts_add_up_to_well_formed_quantities(self):
        lines = [
            {"product_id": "a", "crate_type": "C24", "quantity": 3, "with_deposit": True},
            {"product_id": "b", "crate_type": "C12", "quantity": 2},
            {"product_id": "c", "crate_type": "C12V", "quantity": 7, "with_deposit": True},
            {"product_id": "d", "crate_type": "C6", "quantity": 1},
        ]
        summary = crates.summarize(lines, PRICES.keys())

        total = sum(count.with_deposit + count.to_return for count in summary.values())
        assert total == 13

    def test_accepts_order_item_entities(self):
        items = [
            OrderItem(
                line_number=1,
                product_id="beer",
                crate_type="C12V",
                requested_quantity=2,
                quantity=2,
                with_deposit=True,
                unit_price=1000,
            )
        ]
        summary = crates.summarize(items, PRICES.keys())
        assert summary["C12V"].with_deposit == 2

    def test_defaults_to_configured_crate_types(self):
        summary = crates.summarize([])
        assert set(summary) == {"C24", "C12", "C12V", "C6"}


class TestDepositAmount:
    def test_prices_each_crate_type(self):
        lines = [
            {"product_id": "a", "crate_type": "C24", "quantity": 2, "with_deposit": True},
            {"product_id": "b", "crate_type": "C12V", "quantity": 1, "with_deposit": True},
            {"product_id": "c", "crate_type": "C6", "quantity": 3, "with_deposit": True},
            {"product_id": "d", "crate_type": "C12", "quantity": 5, "with_deposit": False},
        ]
        # 2 * 3000 + 1 * 4000 + 3 * 2000
        assert crates.deposit_total(lines, PRICES) == 16000

    def test_exchanged_crates_cost_nothing(self):
        lines = [{"product_id": "a", "crate_type": "C24", "quantity": 10, "with_deposit": False}]
        assert crates.deposit_total(lines, PRICES) == 0

    def test_as_dict_shape(self):
        summary = crates.summarize(
            [{"product_id": "a", "crate_type": "C6", "quantity": 1, "with_deposit": True}],
            PRICES.keys(),
        )
        assert crates.as_dict(summary)["C6"] == {"with_deposit": 1, "to_return": 0}
