from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from print_kiosk.domain.models import OrderStatus, PrintSettings


class CreateOrderRequest(BaseModel):
    print_settings: Optional[dict] = None
    user_id: str = "guest"
    payment_ref: Optional[str] = None
    asset_refs: list[str] = []
    prepaid: bool = False


class ConfirmPaymentRequest(BaseModel):
    payment_id: str
    signature: str
    gateway_order_ref: Optional[str] = None


class AttachAssetsRequest(BaseModel):
    asset_refs: list[str]


class RefundRequest(BaseModel):
    amount: Optional[int] = None


class OrderResponse(BaseModel):
    id: str
    status: OrderStatus
    user_id: str
    amount: int
    total_pages: int
    print_settings: PrintSettings
    asset_refs: list[str]
    payment_ref: Optional[str] = None
    reprint_of: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    printed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, order):
        return cls(
            id=order.id,
            status=order.status,
            user_id=order.user_id,
            amount=order.amount,
            total_pages=order.total_pages,
            print_settings=order.print_settings,
            asset_refs=order.asset_refs,
            payment_ref=order.payment_ref,
            reprint_of=order.reprint_of,
            created_at=order.created_at,
            expires_at=order.expires_at,
            printed_at=order.printed_at,
        )


class CreatedOrderResponse(OrderResponse):
    pickup_code: Optional[str] = None

    @classmethod
    def from_domain(cls, order):
        response = super().from_domain(order)
        response.pickup_code = order.pickup_code
        return response


class PickupCodeResponse(BaseModel):
    order_id: str
    pickup_code: str


class RedeemResponse(BaseModel):
    order_id: str
    asset_refs: list[str]
    print_settings: PrintSettings
    total_pages: int


class PaymentOrderResponse(BaseModel):
    order_id: str
    payment_ref: str
    amount: int


class ErrorResponse(BaseModel):
    detail: str
