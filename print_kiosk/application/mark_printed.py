import logging
from typing import Callable

from print_kiosk.domain.models import Order, OrderStatus, utcnow
from print_kiosk.domain.exceptions import NotFoundError, InvalidStateError, PreconditionFailed
from print_kiosk.application.interfaces import ReclamationDispatcher

logger = logging.getLogger(__name__)


class MarkPrintedUseCase:
    def __init__(self, unit_of_work, dispatcher: ReclamationDispatcher, clock: Callable = utcnow):
        self._uow = unit_of_work
        self._dispatcher = dispatcher
        self._clock = clock

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise NotFoundError(f"Заказ {order_id} не найден")
            if order.status != OrderStatus.PRINTING:
                raise InvalidStateError(f"Заказ {order_id} не печатается (status: {order.status.value})")

            try:
                order = await uow.orders.conditional_update(
                    order_id,
                    OrderStatus.PRINTING,
                    {"status": OrderStatus.COMPLETED, "pickup_code": None, "printed_at": self._clock()},
                )
            except PreconditionFailed:
                raise InvalidStateError(f"Заказ {order_id} уже завершен")
            await uow.commit()

        logger.info(f"Заказ {order_id} напечатан, код отозван")

        # Только победитель CAS ставит очистку, один раз на завершение
        try:
            await self._dispatcher.dispatch(order_id)
        except Exception as e:
            logger.error(f"Не удалось запустить очистку заказа {order_id}: {e}")
        return order
