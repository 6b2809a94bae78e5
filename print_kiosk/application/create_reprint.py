import logging

from print_kiosk.domain.models import Order, OrderStatus
from print_kiosk.domain.exceptions import NotFoundError, InvalidStateError, NoAssetsError, PreconditionFailed
from print_kiosk.application.create_order import CreateOrderUseCase, CreateOrderDTO

logger = logging.getLogger(__name__)

REPRINTABLE_STATUSES = frozenset({OrderStatus.ACTIVE, OrderStatus.PRINTING})


class CreateReprintUseCase:
    """Новый заказ на те же файлы. Файлы общие, поэтому их защищает SharedAssetGuard.

    Перепечатка записывается раньше, чем проверяется исходный заказ: если
    исходный заказ к этому моменту еще не захвачен очисткой, любая будущая
    очистка увидит перепечатку как владельца файлов.
    """

    def __init__(self, unit_of_work, create_order: CreateOrderUseCase, allow_completed: bool = False):
        self._uow = unit_of_work
        self._create_order = create_order
        # Диагностический режим: перепечатка уже выполненных заказов
        self._allow_completed = allow_completed

    async def __call__(self, order_id: str, payment_ref: str | None = None) -> Order:
        async with self._uow() as uow:
            source = await uow.orders.get_by_id(order_id)
        if not source:
            raise NotFoundError(f"Заказ {order_id} не найден")

        allowed = REPRINTABLE_STATUSES | ({OrderStatus.COMPLETED} if self._allow_completed else set())
        if source.status not in allowed:
            raise InvalidStateError(f"Заказ {order_id} нельзя перепечатать (status: {source.status.value})")
        if not source.asset_refs or source.reclaim_started_at or source.is_reclaimed:
            raise NoAssetsError(f"Файлы заказа {order_id} уже удалены")

        reprint = await self._create_order(CreateOrderDTO(
            print_settings=source.print_settings.model_dump(mode="json"),
            user_id=source.user_id,
            payment_ref=payment_ref,
            asset_refs=source.asset_refs,
            reprint_of=source.id,
        ))

        if not await self._source_still_holds(source.id, reprint.asset_refs):
            await self._withdraw(reprint)
            raise InvalidStateError(f"Заказ {order_id} очищается, перепечатка отменена")

        logger.info(f"Создана перепечатка {reprint.id} заказа {source.id}")
        return reprint

    async def _source_still_holds(self, source_id: str, asset_refs: list[str]) -> bool:
        async with self._uow() as uow:
            source = await uow.orders.get_by_id(source_id)
        if not source or source.reclaim_started_at or source.is_reclaimed:
            return False
        return all(ref in source.asset_refs for ref in asset_refs)

    async def _withdraw(self, reprint: Order) -> None:
        """Истекает перепечатку, ее файлы заберет обычная очистка"""
        async with self._uow() as uow:
            try:
                await uow.orders.conditional_update(
                    reprint.id, reprint.status, {"status": OrderStatus.EXPIRED, "pickup_code": None}
                )
            except PreconditionFailed:
                logger.warning(f"Перепечатка {reprint.id} изменилась до отмены")
                return
            await uow.commit()
        logger.info(f"Перепечатка {reprint.id} отменена: исходный заказ уже очищается")
