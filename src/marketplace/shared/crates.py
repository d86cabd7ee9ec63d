"""Crate deposit ledger.

Drinks travel in returnable crates. On each order line the client either
pays a deposit for the crates (``with_deposit``) or hands back the same
number of empties to the courier. The ledger folds order lines into a
per-crate-type count of both, and prices the deposits.

Lines come from persisted ``OrderItem`` entities as well as raw request
payloads, so anything malformed (missing product, unknown crate type,
garbage quantity) is skipped or zeroed rather than rejected.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from marketplace.config import get_settings


@dataclass
class CrateCount:
    with_deposit: int = 0
    to_return: int = 0

    @property
    def total(self) -> int:
        return self.with_deposit + self.to_return


def _field(line: Any, name: str):
    if isinstance(line, Mapping):
        return line.get(name)
    return getattr(line, name, None)


def line_quantity(line: Any) -> int:
    value = _field(line, "quantity")
    if value is None or isinstance(value, bool):
        return 0
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        return 0
    return max(quantity, 0)


def summarize(lines: Iterable[Any] | None, crate_types: Iterable[str] | None = None) -> dict[str, CrateCount]:
    """Count crates per type. Every known type is present, zero-filled."""
    if crate_types is None:
        crate_types = get_settings().crate_types
    summary = {crate_type: CrateCount() for crate_type in crate_types}

    for line in lines or ():
        if line is None:
            continue
        crate_type = _field(line, "crate_type")
        if not _field(line, "product_id") or crate_type not in summary:
            continue

        quantity = line_quantity(line)
        if _field(line, "with_deposit"):
            summary[crate_type].with_deposit += quantity
        else:
            summary[crate_type].to_return += quantity

    return summary


def deposit_amount(summary: Mapping[str, CrateCount], prices: Mapping[str, int] | None = None) -> int:
    """Deposits owed by the client for the crates it keeps."""
    if prices is None:
        prices = get_settings().crate_deposit_prices
    return sum(count.with_deposit * prices.get(crate_type, 0) for crate_type, count in summary.items())


def deposit_total(lines: Iterable[Any] | None, prices: Mapping[str, int] | None = None) -> int:
    if prices is None:
        prices = get_settings().crate_deposit_prices
    return deposit_amount(summarize(lines, prices.keys()), prices)


def crates_to_return(summary: Mapping[str, CrateCount]) -> int:
    return sum(count.to_return for count in summary.values())


def as_dict(summary: Mapping[str, CrateCount]) -> dict[str, dict[str, int]]:
    return {
        crate_type: {"with_deposit": count.with_deposit, "to_return": count.to_return}
        for crate_type, count in summary.items()
    }
