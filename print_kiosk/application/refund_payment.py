import logging
from typing import Optional

from print_kiosk.domain.exceptions import NotFoundError, InvalidStateError
from print_kiosk.application.interfaces import PaymentGateway

logger = logging.getLogger(__name__)


class RefundPaymentUseCase:
    def __init__(self, unit_of_work, payment_gateway: PaymentGateway):
        self._uow = unit_of_work
        self._gateway = payment_gateway

    async def __call__(self, order_id: str, amount: Optional[int] = None) -> dict:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
        if not order:
            raise NotFoundError(f"Заказ {order_id} не найден")
        if not order.payment_id:
            raise InvalidStateError(f"По заказу {order_id} нет платежа")

        logger.info(f"Возврат платежа {order.payment_id} по заказу {order_id}")
        return await self._gateway.refund(order.payment_id, amount)
