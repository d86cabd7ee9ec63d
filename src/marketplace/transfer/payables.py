"""Read side of supplier payouts: what a supplier is owed right now, and
what a transfer over a set of orders would pay."""

from dataclasses import dataclass, field

from protean.utils.globals import current_domain

from marketplace.config import get_settings
from marketplace.order.order import Order
from marketplace.shared.settlement import SettlementBreakdown, compute_settlement


@dataclass(frozen=True)
class Payables:
    supplier_id: str
    order_ids: list[str] = field(default_factory=list)
    order_count: int = 0
    amount: int = 0


def supplier_payables(supplier_id: str) -> Payables:
    """Delivered orders of the supplier not yet claimed by any transfer."""
    orders = current_domain.repository_for(Order).find_settleable(supplier_id)
    return Payables(
        supplier_id=str(supplier_id),
        order_ids=[str(order.id) for order in orders],
        order_count=len(orders),
        amount=sum(order.supplier_net_amount for order in orders),
    )


def preview_settlement(base_amount, deposit_total, client_rate=None, supplier_rate=None) -> SettlementBreakdown:
    """Price an amount with explicit rates, or the current default ones."""
    settings = get_settings()
    return compute_settlement(
        base_amount,
        deposit_total,
        settings.client_commission_rate if client_rate is None else client_rate,
        settings.supplier_commission_rate if supplier_rate is None else supplier_rate,
    )
