"""CreateTransfer: batch a supplier's delivered orders into one payout.

Steps, all inside one unit of work:

1. Refuse if any requested order already has a transfer link.
2. Reload the orders; every one must be delivered and belong to the
   supplier.
3. Open the transfer for the sum of their supplier net amounts.
4. Write one ``TransferOrder`` link per order and stamp the order.
5. When approval is switched off, complete the transfer straight away.

If step 4 fails part-way, the links already written and the transfer
header are deleted before the error is raised, so a retry starts clean.
"""

import json

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.config import get_settings
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.shared.errors import (
    IneligibleOrders,
    MarketplaceError,
    OrdersAlreadyTransferred,
    TransferIntegrityError,
)
from marketplace.transfer.transfer import Transfer, TransferOrder
from marketplace.transfer.workflow import mark_orders_transferred
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@marketplace.command(part_of="Transfer")
class CreateTransfer:
    supplier_id = Identifier(required=True)
    order_ids = Text(required=True)  # JSON: list of order ids
    created_by = Identifier(required=True)
    transfer_method = String(max_length=20)
    supplier_name = String(max_length=255)
    notes = Text()
    metadata = Text()  # JSON object


def _parse_order_ids(raw):
    try:
        order_ids = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError({"order_ids": ["Order ids must be a JSON list"]}) from None
    if not isinstance(order_ids, list) or not order_ids:
        raise ValidationError({"order_ids": ["At least one order is required"]})

    order_ids = [str(order_id) for order_id in order_ids]
    if len(set(order_ids)) != len(order_ids):
        raise ValidationError({"order_ids": ["Order ids must be unique"]})
    return order_ids


def _parse_metadata(raw):
    if not raw:
        return None
    try:
        metadata = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError({"metadata": ["Metadata must be a JSON object"]}) from None
    if not isinstance(metadata, dict):
        raise ValidationError({"metadata": ["Metadata must be a JSON object"]})
    return metadata


def _eligible_orders(supplier_id, order_ids):
    repo = current_domain.repository_for(Order)
    eligible = []
    for order_id in order_ids:
        try:
            order = repo.get(order_id)
        except ObjectNotFoundError:
            continue
        if str(order.supplier_id) == str(supplier_id) and order.is_settleable:
            eligible.append(order)
    return eligible


def _link_orders(transfer, orders):
    links = current_domain.repository_for(TransferOrder)
    order_repo = current_domain.repository_for(Order)
    for order in orders:
        links.add(TransferOrder.link(transfer.id, order.id, order.supplier_net_amount))
        order.link_to_transfer(transfer.id)
        order_repo.add(order)


def _discard_transfer(transfer):
    """Remove every trace of a transfer whose links could not be written."""
    links = current_domain.repository_for(TransferOrder)
    for link in links.find_by_transfer(transfer.id):
        links._dao.delete(link)

    order_repo = current_domain.repository_for(Order)
    for order_id in transfer.linked_order_ids:
        order = order_repo.get(order_id)
        if str(order.transfer_id or "") == str(transfer.id):
            order.unlink_transfer(transfer.id)
            order_repo.add(order)

    try:
        current_domain.repository_for(Transfer)._dao.delete(transfer)
    except ObjectNotFoundError:
        logger.warning("transfer_header_already_gone", transfer_id=str(transfer.id))


@marketplace.command_handler(part_of=Transfer)
class CreateTransferHandler:
    @handle(CreateTransfer)
    def create_transfer(self, command):
        settings = get_settings()
        order_ids = _parse_order_ids(command.order_ids)

        existing = current_domain.repository_for(TransferOrder).find_by_order_ids(order_ids)
        if existing:
            linked = {str(link.order_id) for link in existing}
            duplicates = [order_id for order_id in order_ids if order_id in linked]
            logger.warning(
                "transfer_refused_duplicate_orders",
                supplier_id=str(command.supplier_id),
                order_ids=duplicates,
            )
            raise OrdersAlreadyTransferred(duplicates)

        orders = _eligible_orders(command.supplier_id, order_ids)
        if len(orders) != len(order_ids):
            eligible = {str(order.id) for order in orders}
            raise IneligibleOrders([order_id for order_id in order_ids if order_id not in eligible])

        transfer = Transfer.open(
            supplier_id=command.supplier_id,
            orders=orders,
            created_by=command.created_by,
            transfer_method=command.transfer_method or settings.default_transfer_method,
            supplier_name=command.supplier_name,
            notes=command.notes,
            metadata=_parse_metadata(command.metadata),
        )
        transfer_repo = current_domain.repository_for(Transfer)
        transfer_repo.add(transfer)

        try:
            _link_orders(transfer, orders)
        except MarketplaceError as exc:
            logger.warning(
                "transfer_linkage_conflict",
                transfer_id=str(transfer.id),
                supplier_id=str(command.supplier_id),
                messages=exc.messages,
            )
            _discard_transfer(transfer)
            raise
        except Exception as exc:
            logger.error(
                "transfer_linkage_failed",
                transfer_id=str(transfer.id),
                supplier_id=str(command.supplier_id),
                error=str(exc),
            )
            _discard_transfer(transfer)
            raise TransferIntegrityError(str(transfer.id), str(exc)) from exc

        if not settings.require_transfer_approval:
            transfer.complete(actor_id=command.created_by, approval_skipped=True)
            transfer_repo.add(transfer)
            mark_orders_transferred(transfer)

        logger.info(
            "transfer_created",
            transfer_id=str(transfer.id),
            supplier_id=str(command.supplier_id),
            amount=transfer.amount,
            order_count=transfer.order_count,
            status=transfer.status,
        )
        return str(transfer.id)
