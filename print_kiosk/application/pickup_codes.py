import logging
import secrets
from typing import Callable, Optional

from print_kiosk.domain.models import Order, OrderStatus
from print_kiosk.domain.exceptions import DuplicateError, InvalidStateError

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_SPAN = 900000


def generate_code() -> str:
    """Случайный 6-значный код 100000..999999"""
    return str(CODE_MIN + secrets.randbelow(CODE_SPAN))


class PickupCodeAllocator:
    """Выдает коды выдачи, уникальные среди живых заказов.

    Уникальность обеспечивает хранилище: код записывается условным
    обновлением, а уникальный индекс по pickup_code отклоняет коллизию
    (DuplicateError). При коллизии берется новый код.
    """

    def __init__(self, unit_of_work, max_attempts: int = 20, generator: Callable[[], str] = generate_code):
        self._uow = unit_of_work
        self._max_attempts = max_attempts
        self._generate = generator

    async def allocate(
        self,
        order_id: str,
        expected_status: OrderStatus,
        patch: Optional[dict] = None,
    ) -> Order:
        """Записывает новый код в заказ вместе с patch. PreconditionFailed пробрасывается."""
        for attempt in range(1, self._max_attempts + 1):
            code = self._generate()
            async with self._uow() as uow:
                # Быстрая проверка, окончательно решает уникальный индекс
                if await uow.orders.query_by_code(code):
                    logger.info(f"Код занят, попытка {attempt}/{self._max_attempts}")
                    continue
                try:
                    order = await uow.orders.conditional_update(
                        order_id, expected_status, {**(patch or {}), "pickup_code": code}
                    )
                except DuplicateError:
                    logger.info(f"Коллизия кода при записи, попытка {attempt}/{self._max_attempts}")
                    continue
                await uow.commit()
                return order

        logger.error(f"Не удалось выделить код для заказа {order_id} за {self._max_attempts} попыток")
        raise InvalidStateError(f"Не удалось выделить код выдачи для заказа {order_id}")
