from fastapi import APIRouter, Depends, HTTPException, status

from print_kiosk.presentation.schemas import (
    CreateOrderRequest, ConfirmPaymentRequest, AttachAssetsRequest, RefundRequest,
    OrderResponse, CreatedOrderResponse, PickupCodeResponse, RedeemResponse, PaymentOrderResponse, ErrorResponse
)
from print_kiosk.application.create_order import CreateOrderUseCase, CreateOrderDTO
from print_kiosk.application.open_payment import OpenPaymentUseCase
from print_kiosk.application.confirm_payment import ConfirmPaymentUseCase, ConfirmPaymentDTO
from print_kiosk.application.attach_assets import AttachAssetsUseCase
from print_kiosk.application.redeem_pickup_code import RedeemPickupCodeUseCase
from print_kiosk.application.mark_printed import MarkPrintedUseCase
from print_kiosk.application.get_order import GetOrderUseCase
from print_kiosk.application.create_reprint import CreateReprintUseCase
from print_kiosk.application.refund_payment import RefundPaymentUseCase
from print_kiosk.domain.exceptions import (
    DomainException, ValidationError, NotFoundError, InvalidStateError, ExpiredError, AlreadyPrintedError,
    NoAssetsError, SignatureError, PaymentServiceError, StorageError
)
from print_kiosk.presentation import factories
from print_kiosk.config import settings

router = APIRouter()

ERROR_STATUS = {
    ValidationError: 400,
    SignatureError: 400,
    ExpiredError: 400,
    NoAssetsError: 400,
    NotFoundError: 404,
    InvalidStateError: 409,
    AlreadyPrintedError: 409,
    PaymentServiceError: 502,
    StorageError: 503,
}


def to_http_error(error: DomainException) -> HTTPException:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail="Внутренняя ошибка")


# Фабрики для создания use cases
def get_create_order_use_case():
    uow = factories.build_unit_of_work()
    return CreateOrderUseCase(uow, factories.build_code_allocator(uow), ttl=settings.ORDER_TTL)


def get_open_payment_use_case():
    return OpenPaymentUseCase(factories.build_unit_of_work(), factories.build_payment_gateway())


def get_confirm_payment_use_case():
    uow = factories.build_unit_of_work()
    return ConfirmPaymentUseCase(uow, factories.build_payment_gateway(), factories.build_code_allocator(uow))


def get_attach_assets_use_case():
    return AttachAssetsUseCase(factories.build_unit_of_work())


def get_redeem_use_case():
    return RedeemPickupCodeUseCase(factories.build_unit_of_work())


def get_mark_printed_use_case():
    uow = factories.build_unit_of_work()
    return MarkPrintedUseCase(uow, factories.build_dispatcher(uow))


def get_get_order_use_case():
    return GetOrderUseCase(factories.build_unit_of_work())


def get_reprint_use_case(create_order: CreateOrderUseCase = Depends(get_create_order_use_case)):
    return CreateReprintUseCase(factories.build_unit_of_work(), create_order, allow_completed=settings.ALLOW_REPRINT)


def get_refund_use_case():
    return RefundPaymentUseCase(factories.build_unit_of_work(), factories.build_payment_gateway())


@router.post(
    "/orders",
    response_model=CreatedOrderResponse,
    responses={400: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def create_order(
    request: CreateOrderRequest,
    use_case: CreateOrderUseCase = Depends(get_create_order_use_case)
):
    """Создать заказ на печать"""
    try:
        order = await use_case(CreateOrderDTO(**request.model_dump()))
        return CreatedOrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/payment", response_model=PaymentOrderResponse)
async def open_payment(
    order_id: str,
    use_case: OpenPaymentUseCase = Depends(get_open_payment_use_case)
):
    """Создать платеж в Razorpay"""
    try:
        order = await use_case(order_id)
        return PaymentOrderResponse(order_id=order.id, payment_ref=order.payment_ref, amount=order.amount)
    except DomainException as e:
        raise to_http_error(e)


@router.post(
    "/orders/{order_id}/confirm-payment",
    response_model=PickupCodeResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}
)
async def confirm_payment(
    order_id: str,
    request: ConfirmPaymentRequest,
    use_case: ConfirmPaymentUseCase = Depends(get_confirm_payment_use_case)
):
    """Проверка подписи платежа и выдача кода"""
    try:
        code = await use_case(ConfirmPaymentDTO(order_id=order_id, **request.model_dump()))
        return PickupCodeResponse(order_id=order_id, pickup_code=code)
    except DomainException as e:
        raise to_http_error(e)


@router.put("/orders/{order_id}/assets", response_model=OrderResponse)
async def attach_assets(
    order_id: str,
    request: AttachAssetsRequest,
    use_case: AttachAssetsUseCase = Depends(get_attach_assets_use_case)
):
    try:
        order = await use_case(order_id, request.asset_refs)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.post(
    "/pickup-codes/{code}/redeem",
    response_model=RedeemResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}
)
async def redeem_pickup_code(
    code: str,
    use_case: RedeemPickupCodeUseCase = Depends(get_redeem_use_case)
):
    """Вызывается киоском (Raspberry Pi)"""
    try:
        order = await use_case(code)
        return RedeemResponse(
            order_id=order.id,
            asset_refs=order.asset_refs,
            print_settings=order.print_settings,
            total_pages=order.total_pages,
        )
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/printed", response_model=OrderResponse)
async def mark_printed(
    order_id: str,
    use_case: MarkPrintedUseCase = Depends(get_mark_printed_use_case)
):
    try:
        order = await use_case(order_id)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_order(
    order_id: str,
    use_case: GetOrderUseCase = Depends(get_get_order_use_case)
):
    """Получить заказ по ID"""
    try:
        order = await use_case(order_id)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/reprint", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_reprint(
    order_id: str,
    use_case: CreateReprintUseCase = Depends(get_reprint_use_case)
):
    try:
        order = await use_case(order_id)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/refund")
async def refund_payment(
    order_id: str,
    request: RefundRequest,
    use_case: RefundPaymentUseCase = Depends(get_refund_use_case)
):
    try:
        refund = await use_case(order_id, request.amount)
        return {"status": "ok", "refund_id": refund.get("id")}
    except DomainException as e:
        raise to_http_error(e)
