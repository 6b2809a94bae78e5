import asyncio
import logging
from datetime import timedelta
from enum import Enum
from typing import Callable, Optional
from pydantic import BaseModel

from print_kiosk.domain.models import Order, OrderStatus, UNPAID_STATUSES, utcnow
from print_kiosk.domain.exceptions import PreconditionFailed
from print_kiosk.application.interfaces import ObjectStore, ReclamationDispatcher
from print_kiosk.application.shared_assets import SharedAssetGuard

logger = logging.getLogger(__name__)

EXPIRABLE_STATUSES = UNPAID_STATUSES | {OrderStatus.ACTIVE}


class RetentionPolicy(str, Enum):
    HISTORY = "history"  # запись остается, файловые поля очищаются
    DELETE = "delete"    # запись удаляется целиком


class ReclaimOutcome(str, Enum):
    RECLAIMED = "reclaimed"
    SKIPPED = "skipped"


class SweepSummary(BaseModel):
    found: int = 0
    expired: int = 0
    reclaimed: int = 0
    skipped: int = 0
    failed: int = 0


class ReclamationSweeper:
    """Истекает просроченные заказы и очищает файлы завершенных.

    Каждый заказ обрабатывается отдельно: ошибка одного не останавливает
    проход, заказ останется кандидатом и будет обработан на следующем проходе.
    """

    def __init__(
        self,
        unit_of_work,
        object_store: ObjectStore,
        asset_guard: SharedAssetGuard,
        ttl: timedelta = timedelta(hours=24),
        completed_retention: timedelta = timedelta(minutes=10),
        retention_policy: RetentionPolicy = RetentionPolicy.HISTORY,
        reclaim_timeout: float = 30.0,
        batch_size: int = 100,
        clock: Callable = utcnow,
    ):
        self._uow = unit_of_work
        self._store = object_store
        self._guard = asset_guard
        self._ttl = ttl
        self._completed_retention = completed_retention
        self._policy = retention_policy
        self._reclaim_timeout = reclaim_timeout
        # Захват очистки считается брошенным после двух таймаутов
        self._claim_ttl = timedelta(seconds=2 * reclaim_timeout)
        self._batch_size = batch_size
        self._clock = clock

    @property
    def reclaim_timeout(self) -> float:
        return self._reclaim_timeout

    async def sweep(self) -> SweepSummary:
        now = self._clock()
        summary = SweepSummary()

        async with self._uow() as uow:
            to_expire = await uow.orders.query_by_status_and_age(
                EXPIRABLE_STATUSES, older_than=now - self._ttl, limit=self._batch_size
            )
            expired = await uow.orders.query_unreclaimed(
                {OrderStatus.EXPIRED}, settled_before=now, limit=self._batch_size
            )
            completed = await uow.orders.query_unreclaimed(
                {OrderStatus.COMPLETED}, settled_before=now - self._completed_retention, limit=self._batch_size
            )

        logger.info(
            f"Проход очистки: к истечению {len(to_expire)}, "
            f"истекших {len(expired)}, завершенных {len(completed)}"
        )

        for order in to_expire:
            await self._process(order.id, summary, expire=True)
        for order in [*expired, *completed]:
            await self._process(order.id, summary, expire=False)

        logger.info(f"Проход очистки завершен: {summary.model_dump()}")
        return summary

    async def _process(self, order_id: str, summary: SweepSummary, expire: bool) -> None:
        summary.found += 1
        try:
            if expire and await self.expire_order(order_id):
                summary.expired += 1
            outcome = await asyncio.wait_for(self.reclaim_order(order_id), timeout=self._reclaim_timeout)
        except asyncio.TimeoutError:
            summary.failed += 1
            logger.error(f"Очистка заказа {order_id} не уложилась в {self._reclaim_timeout}s, отложена")
        except Exception as e:
            summary.failed += 1
            logger.error(f"Ошибка очистки заказа {order_id}: {e}", exc_info=True)
        else:
            if outcome == ReclaimOutcome.RECLAIMED:
                summary.reclaimed += 1
            else:
                summary.skipped += 1

    async def expire_order(self, order_id: str, force: bool = False) -> bool:
        """ACTIVE/неоплаченный -> EXPIRED с отзывом кода. force — без проверки возраста."""
        now = self._clock()
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order or order.status not in EXPIRABLE_STATUSES:
                return False
            if not force and not order.is_stale(now, self._ttl):
                return False
            try:
                await uow.orders.conditional_update(
                    order.id, order.status, {"status": OrderStatus.EXPIRED, "pickup_code": None}
                )
            except PreconditionFailed:
                # Код погасили параллельно, заказ больше не кандидат
                logger.info(f"Заказ {order_id} изменился до истечения, пропуск")
                return False
            await uow.commit()

        logger.info(f"Заказ {order_id} истек, код отозван")
        return True

    async def reclaim_order(self, order_id: str) -> ReclaimOutcome:
        """Удаляет файлы заказа, не используемые другими заказами, и применяет политику хранения.

        Повторный вызов для уже очищенного заказа ничего не делает.
        """
        claimed = await self._claim(order_id)
        if not claimed:
            return ReclaimOutcome.SKIPPED

        for asset_ref in claimed.detached_asset_refs:
            if await self._guard.is_shared(asset_ref, excluding_order=claimed.id):
                logger.info(f"Файл {asset_ref} используется другим заказом, оставляем")
                continue
            await self._store.delete(asset_ref)
            logger.info(f"Файл {asset_ref} заказа {claimed.id} удален")

        await self._finish(claimed)
        logger.info(f"Заказ {claimed.id} очищен ({self._policy.value})")
        return ReclaimOutcome.RECLAIMED

    async def _claim(self, order_id: str) -> Optional[Order]:
        """Снимает ссылки на файлы с заказа до удаления.

        Пока ссылки висят на заказе, SharedAssetGuard видит его как владельца,
        поэтому их переносят в detached_asset_refs одним условным обновлением.
        """
        now = self._clock()
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order or not order.is_terminal or order.is_reclaimed:
                return None
            if order.reclaim_started_at and now - order.reclaim_started_at < self._claim_ttl:
                logger.info(f"Заказ {order_id} уже очищается другим обработчиком")
                return None

            refs = list(order.detached_asset_refs)
            refs.extend(ref for ref in order.asset_refs if ref not in refs)
            try:
                claimed = await uow.orders.conditional_update(
                    order.id,
                    order.status,
                    {"asset_refs": [], "detached_asset_refs": refs, "reclaim_started_at": now},
                    expected_version=order.version,
                )
            except PreconditionFailed:
                logger.info(f"Заказ {order_id} захвачен другим обработчиком")
                return None
            await uow.commit()
        return claimed

    async def _finish(self, order: Order) -> None:
        async with self._uow() as uow:
            if self._policy == RetentionPolicy.DELETE:
                await uow.orders.delete(order.id)
            else:
                await uow.orders.conditional_update(
                    order.id,
                    order.status,
                    {"detached_asset_refs": [], "pickup_code": None, "reclaimed_at": self._clock()},
                    expected_version=order.version,
                )
            await uow.commit()


class InlineReclamationDispatcher(ReclamationDispatcher):
    """Очистка сразу после печати, в рамках того же запроса"""

    def __init__(self, sweeper: ReclamationSweeper):
        self._sweeper = sweeper

    async def dispatch(self, order_id: str) -> None:
        await asyncio.wait_for(self._sweeper.reclaim_order(order_id), timeout=self._sweeper.reclaim_timeout)


class PeriodicSweeper:
    """Запускает проход очистки с фиксированным интервалом"""

    def __init__(self, sweeper: ReclamationSweeper, interval: float):
        self._sweeper = sweeper
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Sweeper запущен, интервал {self._interval}s")

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Sweeper остановлен")

    async def _run(self) -> None:
        while True:
            try:
                await self._sweeper.sweep()
            except Exception as e:
                logger.error(f"Ошибка в sweeper: {e}", exc_info=True)
            await asyncio.sleep(self._interval)
