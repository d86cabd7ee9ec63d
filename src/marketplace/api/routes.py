"""FastAPI routes for the marketplace: orders, offers, transfers.

Writes go through Protean commands processed synchronously; reads load
aggregates straight from their repositories.
"""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from marketplace.api.schemas import (
    AcceptOfferRequest,
    AdvanceStatusRequest,
    ApproveTransferRequest,
    CancelOrderRequest,
    CompleteTransferRequest,
    ConfirmDeliveryRequest,
    CrateCountSchema,
    CrateSummaryResponse,
    CreateTransferRequest,
    OfferIdResponse,
    OfferResponse,
    OrderItemResponse,
    OrderResponse,
    PayablesResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    RecordPaymentRequest,
    RejectTransferRequest,
    SettlementPreviewRequest,
    SettlementSchema,
    StatusResponse,
    SubmitOfferRequest,
    TransferIdResponse,
    TransferResponse,
)
from marketplace.offer.acceptance import AcceptOffer
from marketplace.offer.offer import SupplierOffer
from marketplace.offer.submission import SubmitOffer
from marketplace.order.delivery import ConfirmDelivery
from marketplace.order.lifecycle import AdvanceOrderStatus, CancelOrder, PublishOrder
from marketplace.order.order import Order
from marketplace.order.payment import RecordPayment
from marketplace.order.placement import PlaceOrder
from marketplace.shared import crates
from marketplace.transfer.creation import CreateTransfer
from marketplace.transfer.payables import preview_settlement, supplier_payables
from marketplace.transfer.transfer import Transfer
from marketplace.transfer.workflow import ApproveTransfer, CompleteTransfer, RejectTransfer


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        client_id=str(order.client_id),
        supplier_id=str(order.supplier_id) if order.supplier_id else None,
        status=order.current_status.value,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        delivery_address=order.delivery_address,
        items=[OrderItemResponse(**item.to_dict()) for item in order.sorted_items()],
        base_amount=order.base_amount,
        deposit_total=order.deposit_total,
        client_commission_amount=order.client_commission_amount,
        supplier_commission_amount=order.supplier_commission_amount,
        total_amount=order.total_amount,
        supplier_net_amount=order.supplier_net_amount,
        accepted_offer_id=str(order.accepted_offer_id) if order.accepted_offer_id else None,
        transfer_id=str(order.transfer_id) if order.transfer_id else None,
        created_at=order.created_at,
        paid_at=order.paid_at,
        delivered_at=order.delivered_at,
    )


def _offer_response(offer) -> OfferResponse:
    return OfferResponse(
        offer_id=str(offer.id),
        order_id=str(offer.order_id),
        supplier_id=str(offer.supplier_id),
        status=offer.status,
        items=[item.to_dict() for item in offer.items],
        base_amount=offer.base_amount,
        deposit_total=offer.deposit_total,
        total_amount=offer.total_amount,
        supplier_net_amount=offer.supplier_net_amount,
        message=offer.message,
        created_at=offer.created_at,
    )


def _transfer_response(transfer) -> TransferResponse:
    return TransferResponse(
        transfer_id=str(transfer.id),
        supplier_id=str(transfer.supplier_id),
        supplier_name=transfer.supplier_name,
        amount=transfer.amount,
        order_count=transfer.order_count,
        order_ids=transfer.linked_order_ids,
        transfer_method=transfer.transfer_method,
        status=transfer.status,
        created_by=str(transfer.created_by),
        approval_skipped=bool(transfer.approval_skipped),
        rejection_reason=transfer.rejection_reason,
        created_at=transfer.created_at,
        completed_at=transfer.completed_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=PlaceOrderResponse)
async def place_order(body: PlaceOrderRequest) -> PlaceOrderResponse:
    """Place a delivery order. The confirmation code is returned only here."""
    command = PlaceOrder(
        client_id=body.client_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        delivery_address=body.delivery_address,
        payment_method=body.payment_method,
        latitude=body.latitude,
        longitude=body.longitude,
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return PlaceOrderResponse(order_id=order_id, confirmation_code=order.delivery_confirmation_code)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return _order_response(order)


@order_router.get("/{order_id}/crates", response_model=CrateSummaryResponse)
async def get_crate_summary(order_id: str) -> CrateSummaryResponse:
    """Crates the client keeps against a deposit, and empties to hand back."""
    order = current_domain.repository_for(Order).get(order_id)
    summary = order.crate_summary()
    return CrateSummaryResponse(
        order_id=str(order.id),
        crates={
            crate_type: CrateCountSchema(with_deposit=count.with_deposit, to_return=count.to_return)
            for crate_type, count in summary.items()
        },
        deposit_amount=crates.deposit_amount(summary),
        crates_to_return=crates.crates_to_return(summary),
    )


@order_router.post("/{order_id}/publish", response_model=StatusResponse)
async def publish_order(order_id: str) -> StatusResponse:
    current_domain.process(PublishOrder(order_id=order_id), asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/status", response_model=StatusResponse)
async def advance_status(order_id: str, body: AdvanceStatusRequest) -> StatusResponse:
    command = AdvanceOrderStatus(
        order_id=order_id,
        expected_status=body.expected_status,
        next_status=body.next_status,
        actor_id=body.actor_id,
    )
    new_status = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=new_status)


@order_router.post("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(
        order_id=order_id,
        expected_status=body.expected_status,
        reason=body.reason,
        cancelled_by=body.cancelled_by,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/payment", response_model=StatusResponse)
async def record_payment(order_id: str, body: RecordPaymentRequest) -> StatusResponse:
    """Payment provider webhook."""
    command = RecordPayment(
        order_id=order_id,
        transaction_reference=body.transaction_reference,
        payment_method=body.payment_method,
        amount=body.amount,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/delivery-confirmation", response_model=StatusResponse)
async def confirm_delivery(order_id: str, body: ConfirmDeliveryRequest) -> StatusResponse:
    command = ConfirmDelivery(
        order_id=order_id,
        confirmation_code=body.confirmation_code,
        courier_id=body.courier_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/offers", status_code=201, response_model=OfferIdResponse)
async def submit_offer(order_id: str, body: SubmitOfferRequest) -> OfferIdResponse:
    command = SubmitOffer(
        order_id=order_id,
        supplier_id=body.supplier_id,
        items=json.dumps([line.model_dump(exclude_none=True) for line in body.items]),
        message=body.message,
    )
    offer_id = current_domain.process(command, asynchronous=False)
    return OfferIdResponse(offer_id=offer_id)


@order_router.get("/{order_id}/offers", response_model=list[OfferResponse])
async def list_offers(order_id: str) -> list[OfferResponse]:
    current_domain.repository_for(Order).get(order_id)
    offers = current_domain.repository_for(SupplierOffer).find_for_order(order_id)
    return [_offer_response(offer) for offer in offers]


@order_router.post("/{order_id}/offers/{offer_id}/accept", response_model=StatusResponse)
async def accept_offer(order_id: str, offer_id: str, body: AcceptOfferRequest | None = None) -> StatusResponse:
    command = AcceptOffer(
        order_id=order_id,
        offer_id=offer_id,
        client_id=body.client_id if body else None,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Supplier Router
# ---------------------------------------------------------------------------
supplier_router = APIRouter(prefix="/suppliers", tags=["suppliers"])


@supplier_router.get("/{supplier_id}/payables", response_model=PayablesResponse)
async def get_payables(supplier_id: str) -> PayablesResponse:
    """Delivered orders the supplier has not been paid for yet."""
    payables = supplier_payables(supplier_id)
    return PayablesResponse(
        supplier_id=payables.supplier_id,
        order_ids=payables.order_ids,
        order_count=payables.order_count,
        amount=payables.amount,
    )


# ---------------------------------------------------------------------------
# Transfer Router
# ---------------------------------------------------------------------------
transfer_router = APIRouter(prefix="/transfers", tags=["transfers"])


@transfer_router.post("", status_code=201, response_model=TransferIdResponse)
async def create_transfer(body: CreateTransferRequest) -> TransferIdResponse:
    command = CreateTransfer(
        supplier_id=body.supplier_id,
        order_ids=json.dumps(body.order_ids),
        created_by=body.created_by,
        transfer_method=body.transfer_method,
        supplier_name=body.supplier_name,
        notes=body.notes,
        metadata=json.dumps(body.metadata) if body.metadata else None,
    )
    transfer_id = current_domain.process(command, asynchronous=False)
    return TransferIdResponse(transfer_id=transfer_id)


@transfer_router.get("", response_model=list[TransferResponse])
async def list_transfers(supplier_id: str | None = None, status: str | None = None) -> list[TransferResponse]:
    transfers = current_domain.repository_for(Transfer).find_recent(supplier_id=supplier_id, status=status)
    return [_transfer_response(transfer) for transfer in transfers]


@transfer_router.get("/{transfer_id}", response_model=TransferResponse)
async def get_transfer(transfer_id: str) -> TransferResponse:
    return _transfer_response(current_domain.repository_for(Transfer).get(transfer_id))


@transfer_router.post("/{transfer_id}/approve", response_model=StatusResponse)
async def approve_transfer(transfer_id: str, body: ApproveTransferRequest) -> StatusResponse:
    current_domain.process(
        ApproveTransfer(transfer_id=transfer_id, approved_by=body.approved_by),
        asynchronous=False,
    )
    return StatusResponse()


@transfer_router.post("/{transfer_id}/complete", response_model=StatusResponse)
async def complete_transfer(transfer_id: str, body: CompleteTransferRequest) -> StatusResponse:
    current_domain.process(
        CompleteTransfer(transfer_id=transfer_id, completed_by=body.completed_by),
        asynchronous=False,
    )
    return StatusResponse()


@transfer_router.post("/{transfer_id}/reject", response_model=StatusResponse)
async def reject_transfer(transfer_id: str, body: RejectTransferRequest) -> StatusResponse:
    current_domain.process(
        RejectTransfer(transfer_id=transfer_id, rejected_by=body.rejected_by, reason=body.reason),
        asynchronous=False,
    )
    return StatusResponse()


# ---------------------------------------------------------------------------
# Settlement Router
# ---------------------------------------------------------------------------
settlement_router = APIRouter(prefix="/settlements", tags=["settlements"])


@settlement_router.post("/preview", response_model=SettlementSchema)
async def preview(body: SettlementPreviewRequest) -> SettlementSchema:
    breakdown = preview_settlement(
        body.base_amount,
        body.deposit_total,
        body.client_commission_rate,
        body.supplier_commission_rate,
    )
    return SettlementSchema(
        base_amount=breakdown.base_amount,
        deposit_total=breakdown.deposit_total,
        client_commission=breakdown.client_commission,
        supplier_commission=breakdown.supplier_commission,
        client_total=breakdown.client_total,
        supplier_net=breakdown.supplier_net,
    )
