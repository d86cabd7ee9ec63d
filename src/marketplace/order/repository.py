"""Repository for the Order aggregate."""

from marketplace.domain import marketplace
from marketplace.order.order import Order, OrderStatus
from marketplace.shared.errors import conflict_on_stale_write


@marketplace.repository(part_of=Order)
class OrderRepository:
    def add(self, order: Order) -> Order:
        with conflict_on_stale_write("Order", order.id):
            return super().add(order)

    def find_by_client(self, client_id: str) -> list[Order]:
        return self._dao.query.filter(client_id=str(client_id)).all().items

    def find_delivered_for_supplier(self, supplier_id: str) -> list[Order]:
        return (
            self._dao.query.filter(
                supplier_id=str(supplier_id),
                status=OrderStatus.DELIVERED.value,
            )
            .all()
            .items
        )

    def find_settleable(self, supplier_id: str) -> list[Order]:
        """Delivered orders of the supplier that no transfer has claimed yet."""
        orders = [order for order in self.find_delivered_for_supplier(supplier_id) if order.is_settleable]
        return sorted(orders, key=lambda order: order.delivered_at or order.created_at)
