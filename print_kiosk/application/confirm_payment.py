import logging
from typing import Optional
from pydantic import BaseModel

from print_kiosk.domain.models import OrderStatus
from print_kiosk.domain.exceptions import (
    NotFoundError, InvalidStateError, SignatureError, PreconditionFailed
)
from print_kiosk.application.interfaces import PaymentGateway
from print_kiosk.application.pickup_codes import PickupCodeAllocator

logger = logging.getLogger(__name__)


class ConfirmPaymentDTO(BaseModel):
    order_id: str
    payment_id: str
    signature: str
    gateway_order_ref: Optional[str] = None


class ConfirmPaymentUseCase:
    def __init__(self, unit_of_work, payment_gateway: PaymentGateway, code_allocator: PickupCodeAllocator,
                 max_attempts: int = 3):
        self._uow = unit_of_work
        self._gateway = payment_gateway
        self._codes = code_allocator
        self._max_attempts = max_attempts

    async def __call__(self, dto: ConfirmPaymentDTO) -> str:
        """Проверяет подпись платежа и активирует заказ. Возвращает код выдачи."""
        logger.info(f"Подтверждение оплаты заказа {dto.order_id}")

        for _ in range(self._max_attempts):
            async with self._uow() as uow:
                order = await uow.orders.get_by_id(dto.order_id)
            if not order:
                raise NotFoundError(f"Заказ {dto.order_id} не найден")

            # Повторный callback с тем же платежом
            if order.status == OrderStatus.ACTIVE and order.payment_id == dto.payment_id:
                logger.info(f"Заказ {order.id} уже оплачен")
                return order.pickup_code
            if not order.can_be_paid():
                raise InvalidStateError(f"Заказ {order.id} нельзя оплатить (status: {order.status.value})")

            order_ref = order.payment_ref or dto.gateway_order_ref
            if not order_ref or not self._gateway.verify_signature(order_ref, dto.payment_id, dto.signature):
                logger.warning(f"Неверная подпись платежа для заказа {order.id}")
                raise SignatureError()

            patch = {"status": OrderStatus.ACTIVE, "payment_id": dto.payment_id}
            if not order.payment_ref:
                patch["payment_ref"] = order_ref
            try:
                order = await self._codes.allocate(order.id, order.status, patch)
            except PreconditionFailed:
                logger.info(f"Статус заказа {order.id} изменился во время оплаты, повтор")
                continue

            logger.info(f"Заказ {order.id} оплачен и активирован")
            return order.pickup_code

        raise InvalidStateError(f"Заказ {dto.order_id} изменялся параллельно, оплата не подтверждена")
