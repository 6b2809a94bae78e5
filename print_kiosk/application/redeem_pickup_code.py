import logging
from typing import Callable

from print_kiosk.domain.models import Order, OrderStatus, utcnow
from print_kiosk.domain.exceptions import (
    NotFoundError, InvalidStateError, ExpiredError, AlreadyPrintedError, NoAssetsError, PreconditionFailed
)

logger = logging.getLogger(__name__)


class RedeemPickupCodeUseCase:
    """Киоск предъявляет код выдачи: ACTIVE -> PRINTING (не более одного раза)"""

    def __init__(self, unit_of_work, clock: Callable = utcnow, max_attempts: int = 3):
        self._uow = unit_of_work
        self._clock = clock
        self._max_attempts = max_attempts

    async def __call__(self, code: str) -> Order:
        logger.info(f"Киоск проверяет код {code}")

        for _ in range(self._max_attempts):
            order = await self._find_live_order(code)
            self._check(order)

            async with self._uow() as uow:
                try:
                    order = await uow.orders.conditional_update(
                        order.id, OrderStatus.ACTIVE, {"status": OrderStatus.PRINTING}
                    )
                except PreconditionFailed:
                    # Другой запрос успел первым, перечитываем и проверяем заново
                    continue
                await uow.commit()

            logger.info(f"Заказ {order.id} передан на печать")
            return order

        raise InvalidStateError(f"Код {code} не удалось погасить")

    async def _find_live_order(self, code: str) -> Order:
        async with self._uow() as uow:
            holders = await uow.orders.query_by_code(code)
        if not holders:
            raise NotFoundError("Заказ не найден или истек")
        return holders[0]

    def _check(self, order: Order) -> None:
        if order.status in (OrderStatus.PRINTING, OrderStatus.COMPLETED):
            raise AlreadyPrintedError(f"Заказ {order.id} уже напечатан")
        if order.status != OrderStatus.ACTIVE:
            raise InvalidStateError(f"Заказ {order.id} не активен (status: {order.status.value})")
        if order.is_expired(self._clock()):
            raise ExpiredError("Срок действия кода выдачи истек")
        if not order.asset_refs:
            raise NoAssetsError(f"У заказа {order.id} нет файлов")
