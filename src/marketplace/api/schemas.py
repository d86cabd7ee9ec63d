"""Pydantic request/response schemas for the marketplace API.

These are the external contract; handlers receive Protean commands built
from them. Money is always an integer amount in the smallest currency unit.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class OrderLineSchema(BaseModel):
    product_id: str
    crate_type: str
    quantity: int = Field(ge=0)
    with_deposit: bool = False
    unit_price: int = Field(default=0, ge=0)


class CrateCountSchema(BaseModel):
    with_deposit: int = 0
    to_return: int = 0


class SettlementSchema(BaseModel):
    base_amount: int
    deposit_total: int
    client_commission: int
    supplier_commission: int
    client_total: int
    supplier_net: int


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    client_id: str
    items: list[OrderLineSchema] = Field(min_length=1)
    delivery_address: str
    payment_method: str
    latitude: float | None = None
    longitude: float | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "client_id": "client-001",
                    "items": [
                        {"product_id": "beer-33cl", "crate_type": "C24", "quantity": 2, "with_deposit": True, "unit_price": 6000},
                        {"product_id": "soda-30cl", "crate_type": "C12", "quantity": 1, "unit_price": 3500},
                    ],
                    "delivery_address": "Cocody, Rue des Jardins",
                    "payment_method": "orange",
                }
            ]
        }
    }


class PlaceOrderResponse(BaseModel):
    order_id: str
    confirmation_code: str


class AdvanceStatusRequest(BaseModel):
    expected_status: str
    next_status: str
    actor_id: str | None = None


class CancelOrderRequest(BaseModel):
    expected_status: str
    reason: str
    cancelled_by: str | None = None


class RecordPaymentRequest(BaseModel):
    transaction_reference: str
    payment_method: str | None = None
    amount: int | None = Field(default=None, ge=0)


class ConfirmDeliveryRequest(BaseModel):
    confirmation_code: str
    courier_id: str | None = None


class OrderItemResponse(BaseModel):
    line_number: int
    product_id: str
    crate_type: str
    requested_quantity: int
    quantity: int
    with_deposit: bool
    unit_price: int


class OrderResponse(BaseModel):
    order_id: str
    client_id: str
    supplier_id: str | None = None
    status: str
    payment_status: str
    payment_method: str
    delivery_address: str
    items: list[OrderItemResponse]
    base_amount: int
    deposit_total: int
    client_commission_amount: int
    supplier_commission_amount: int
    total_amount: int
    supplier_net_amount: int
    accepted_offer_id: str | None = None
    transfer_id: str | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None
    delivered_at: datetime | None = None


class CrateSummaryResponse(BaseModel):
    order_id: str
    crates: dict[str, CrateCountSchema]
    deposit_amount: int
    crates_to_return: int


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------
class OfferLineSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=0)
    unit_price: int | None = Field(default=None, ge=0)
    with_deposit: bool | None = None


class SubmitOfferRequest(BaseModel):
    supplier_id: str
    items: list[OfferLineSchema]
    message: str | None = None


class AcceptOfferRequest(BaseModel):
    client_id: str | None = None


class OfferIdResponse(BaseModel):
    offer_id: str


class OfferResponse(BaseModel):
    offer_id: str
    order_id: str
    supplier_id: str
    status: str
    items: list[dict]
    base_amount: int
    deposit_total: int
    total_amount: int
    supplier_net_amount: int
    message: str | None = None
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------
class CreateTransferRequest(BaseModel):
    supplier_id: str
    order_ids: list[str] = Field(min_length=1)
    created_by: str
    transfer_method: str | None = None
    supplier_name: str | None = None
    notes: str | None = None
    metadata: dict | None = None


class TransferIdResponse(BaseModel):
    transfer_id: str


class ApproveTransferRequest(BaseModel):
    approved_by: str


class CompleteTransferRequest(BaseModel):
    completed_by: str


class RejectTransferRequest(BaseModel):
    rejected_by: str
    reason: str


class TransferResponse(BaseModel):
    transfer_id: str
    supplier_id: str
    supplier_name: str | None = None
    amount: int
    order_count: int
    order_ids: list[str]
    transfer_method: str
    status: str
    created_by: str
    approval_skipped: bool = False
    rejection_reason: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


class PayablesResponse(BaseModel):
    supplier_id: str
    order_ids: list[str]
    order_count: int
    amount: int


class SettlementPreviewRequest(BaseModel):
    base_amount: int = Field(ge=0)
    deposit_total: int = Field(default=0, ge=0)
    client_commission_rate: float | None = Field(default=None, ge=0, le=100)
    supplier_commission_rate: float | None = Field(default=None, ge=0, le=100)
