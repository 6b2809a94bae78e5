import logging

from print_kiosk.domain.models import Order, OrderStatus
from print_kiosk.domain.exceptions import NotFoundError, InvalidStateError, PreconditionFailed
from print_kiosk.application.interfaces import PaymentGateway

logger = logging.getLogger(__name__)


class OpenPaymentUseCase:
    """Создает заказ в платежном шлюзе: CREATED -> PENDING_PAYMENT"""

    def __init__(self, unit_of_work, payment_gateway: PaymentGateway):
        self._uow = unit_of_work
        self._gateway = payment_gateway

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
        if not order:
            raise NotFoundError(f"Заказ {order_id} не найден")

        if order.status == OrderStatus.PENDING_PAYMENT:
            return order
        if not order.can_transition_to(OrderStatus.PENDING_PAYMENT):
            raise InvalidStateError(f"Заказ {order_id} нельзя отправить на оплату (status: {order.status.value})")

        gateway_order = await self._gateway.create_order(amount=order.amount, receipt=f"rcpt_{order.id}")
        logger.info(f"Создан платеж {gateway_order['id']} для заказа {order.id}")

        async with self._uow() as uow:
            try:
                order = await uow.orders.conditional_update(
                    order.id,
                    OrderStatus.CREATED,
                    {"status": OrderStatus.PENDING_PAYMENT, "payment_ref": gateway_order["id"]},
                )
            except PreconditionFailed:
                raise InvalidStateError(f"Заказ {order_id} изменился во время создания платежа")
            await uow.commit()
        return order
