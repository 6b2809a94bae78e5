import logging

from print_kiosk.domain.models import Order, OrderStatus
from print_kiosk.domain.exceptions import NotFoundError, InvalidStateError, ValidationError, PreconditionFailed

logger = logging.getLogger(__name__)


class AttachAssetsUseCase:
    """Привязывает загруженные файлы к заказу. Список заменяется целиком."""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, asset_refs: list[str]) -> Order:
        refs = list(asset_refs)
        if not refs or any(not ref for ref in refs):
            raise ValidationError("Пустой список файлов")
        if len(set(refs)) != len(refs):
            raise ValidationError("Файлы в заказе повторяются")

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise NotFoundError(f"Заказ {order_id} не найден")
            if order.asset_refs == refs:
                return order
            if not order.can_accept_assets():
                raise InvalidStateError(f"Заказ {order_id} не принимает файлы (status: {order.status.value})")
            # Оплаченный заказ с файлами уже ушел покупателю с кодом
            if order.status == OrderStatus.ACTIVE and order.asset_refs:
                raise InvalidStateError(f"Файлы заказа {order_id} уже привязаны")

            # Замененные файлы уходят в detached_asset_refs и удаляются при очистке заказа
            dropped = [ref for ref in order.asset_refs if ref not in refs]
            detached = [ref for ref in order.detached_asset_refs if ref not in refs]
            detached.extend(ref for ref in dropped if ref not in detached)
            try:
                order = await uow.orders.conditional_update(
                    order_id,
                    order.status,
                    {"asset_refs": refs, "detached_asset_refs": detached},
                    expected_version=order.version,
                )
            except PreconditionFailed:
                raise InvalidStateError(f"Заказ {order_id} изменился, повторите запрос")
            await uow.commit()

        logger.info(f"К заказу {order_id} привязано файлов: {len(refs)}")
        return order
