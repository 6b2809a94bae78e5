from print_kiosk.domain.models import Order
from print_kiosk.domain.exceptions import NotFoundError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise NotFoundError(f"Заказ {order_id} не найден")
            return order
