"""Repositories for Transfer and its order links."""

from marketplace.domain import marketplace
from marketplace.shared.errors import conflict_on_stale_write
from marketplace.transfer.transfer import Transfer, TransferOrder


@marketplace.repository(part_of=Transfer)
class TransferRepository:
    def add(self, transfer: Transfer) -> Transfer:
        with conflict_on_stale_write("Transfer", transfer.id):
            return super().add(transfer)

    def find_recent(self, supplier_id: str | None = None, status: str | None = None) -> list[Transfer]:
        criteria = {}
        if supplier_id:
            criteria["supplier_id"] = str(supplier_id)
        if status:
            criteria["status"] = status

        query = self._dao.query.filter(**criteria) if criteria else self._dao.query
        transfers = query.all().items
        return sorted(transfers, key=lambda transfer: transfer.created_at, reverse=True)


@marketplace.repository(part_of=TransferOrder)
class TransferOrderRepository:
    def find_by_transfer(self, transfer_id: str) -> list[TransferOrder]:
        return self._dao.query.filter(transfer_id=str(transfer_id)).all().items

    def find_by_order_ids(self, order_ids) -> list[TransferOrder]:
        links = []
        for order_id in order_ids:
            links.extend(self._dao.query.filter(order_id=str(order_id)).all().items)
        return links
