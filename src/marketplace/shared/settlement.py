"""Commission calculator.

Pure functions, integer money in the smallest currency unit. Commissions
are percentages of the base amount only; crate deposits pass through
untouched to the supplier.

    client_total = base + deposits + client_commission
    supplier_net = base + deposits - supplier_commission
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ValidationError


@dataclass(frozen=True)
class SettlementBreakdown:
    base_amount: int
    deposit_total: int
    client_commission: int
    supplier_commission: int
    client_total: int
    supplier_net: int

    @property
    def platform_revenue(self) -> int:
        return self.client_commission + self.supplier_commission


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def commission(base_amount: int, rate: float) -> int:
    """``rate`` percent of ``base_amount``, rounded half-up to a whole unit."""
    # str() keeps 8.0 from turning into 8.0000000000000004
    return round_half_up(Decimal(base_amount) * Decimal(str(rate)) / Decimal(100))


def _check_inputs(base_amount, deposit_total, client_rate, supplier_rate) -> None:
    errors = {}
    if base_amount is None or base_amount < 0:
        errors["base_amount"] = ["Base amount must be zero or positive"]
    if deposit_total is None or deposit_total < 0:
        errors["deposit_total"] = ["Deposit total must be zero or positive"]
    for name, rate in (("client_commission_rate", client_rate), ("supplier_commission_rate", supplier_rate)):
        if rate is None or not 0 <= rate <= 100:
            errors[name] = ["Commission rate must be between 0 and 100"]
    if errors:
        raise ValidationError(errors)


def compute_settlement(
    base_amount: int,
    deposit_total: int,
    client_rate: float,
    supplier_rate: float,
) -> SettlementBreakdown:
    _check_inputs(base_amount, deposit_total, client_rate, supplier_rate)

    client_commission = commission(base_amount, client_rate)
    supplier_commission = commission(base_amount, supplier_rate)

    return SettlementBreakdown(
        base_amount=base_amount,
        deposit_total=deposit_total,
        client_commission=client_commission,
        supplier_commission=supplier_commission,
        client_total=base_amount + deposit_total + client_commission,
        supplier_net=base_amount + deposit_total - supplier_commission,
    )
