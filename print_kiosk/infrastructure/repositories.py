from typing import Optional, List, Iterable, Callable
from datetime import datetime, timezone
from sqlalchemy import select, insert, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from print_kiosk.domain.models import Order, OrderStatus, PrintSettings, utcnow
from print_kiosk.domain.exceptions import DuplicateError, NotFoundError, PreconditionFailed, StorageError
from print_kiosk.infrastructure.db_schema import orders_tbl, order_assets_tbl
from print_kiosk.application.interfaces import OrderRepository


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite отдает naive datetime, все времена хранятся в UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession, clock: Callable = utcnow):
        self._session = session
        self._clock = clock

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        orders = await self._select(orders_tbl.c.id == order_id)
        return orders[0] if orders else None

    async def create(self, order: Order) -> None:
        stmt = insert(orders_tbl).values(
            id=order.id,
            status=order.status.value,
            user_id=order.user_id,
            pickup_code=order.pickup_code,
            print_settings=order.print_settings.model_dump(mode="json"),
            amount=order.amount,
            total_pages=order.total_pages,
            payment_ref=order.payment_ref,
            payment_id=order.payment_id,
            reprint_of=order.reprint_of,
            detached_asset_refs=list(order.detached_asset_refs),
            version=order.version,
            created_at=order.created_at,
            expires_at=order.expires_at,
            updated_at=order.updated_at,
            printed_at=order.printed_at,
            reclaim_started_at=order.reclaim_started_at,
            reclaimed_at=order.reclaimed_at,
        )
        try:
            await self._session.execute(stmt)
        except IntegrityError:
            raise DuplicateError(f"Заказ {order.id} уже существует")
        except SQLAlchemyError as e:
            raise StorageError(f"Ошибка базы данных: {e}") from e
        await self._replace_assets(order.id, order.asset_refs)

    async def conditional_update(
        self,
        order_id: str,
        expected_status: OrderStatus,
        patch: dict,
        expected_version: Optional[int] = None,
    ) -> Order:
        values = {}
        for key, value in patch.items():
            if key == "asset_refs":
                continue
            values[key] = value.value if isinstance(value, OrderStatus) else value
        values["version"] = orders_tbl.c.version + 1
        values["updated_at"] = self._clock()

        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id, orders_tbl.c.status == expected_status.value)
            .values(**values)
        )
        if expected_version is not None:
            stmt = stmt.where(orders_tbl.c.version == expected_version)

        try:
            result = await self._session.execute(stmt)
        except IntegrityError:
            raise DuplicateError(f"Код выдачи {patch.get('pickup_code')} уже занят")
        except SQLAlchemyError as e:
            raise StorageError(f"Ошибка базы данных: {e}") from e

        if result.rowcount == 0:
            current = await self.get_by_id(order_id)
            if current is None:
                raise NotFoundError(f"Заказ {order_id} не найден")
            raise PreconditionFailed(order_id, expected_status, current.status)

        if "asset_refs" in patch:
            await self._replace_assets(order_id, patch["asset_refs"])
        return await self.get_by_id(order_id)

    async def delete(self, order_id: str) -> None:
        await self._execute(delete(order_assets_tbl).where(order_assets_tbl.c.order_id == order_id))
        await self._execute(delete(orders_tbl).where(orders_tbl.c.id == order_id))

    async def query_by_status_and_age(
        self, statuses: Iterable[OrderStatus], older_than: datetime, limit: Optional[int] = None
    ) -> List[Order]:
        return await self._select(
            orders_tbl.c.status.in_([s.value for s in statuses]),
            orders_tbl.c.created_at <= older_than,
            limit=limit,
        )

    async def query_by_code(self, code: str) -> List[Order]:
        return await self._select(orders_tbl.c.pickup_code == code)

    async def query_by_asset_ref(self, asset_ref: str, limit: Optional[int] = None) -> List[Order]:
        holders = (
            select(order_assets_tbl.c.order_id)
            .where(order_assets_tbl.c.asset_ref == asset_ref)
            .distinct()
        )
        if limit is not None:
            holders = holders.limit(limit)
        return await self._select(orders_tbl.c.id.in_(holders))

    async def query_unreclaimed(
        self, statuses: Iterable[OrderStatus], settled_before: datetime, limit: Optional[int] = None
    ) -> List[Order]:
        return await self._select(
            orders_tbl.c.status.in_([s.value for s in statuses]),
            orders_tbl.c.reclaimed_at.is_(None),
            orders_tbl.c.updated_at <= settled_before,
            limit=limit,
        )

    async def _replace_assets(self, order_id: str, asset_refs: List[str]) -> None:
        await self._execute(delete(order_assets_tbl).where(order_assets_tbl.c.order_id == order_id))
        if asset_refs:
            await self._execute(
                insert(order_assets_tbl),
                [
                    {"order_id": order_id, "position": position, "asset_ref": ref}
                    for position, ref in enumerate(asset_refs)
                ],
            )

    async def _select(self, *criteria, limit: Optional[int] = None) -> List[Order]:
        stmt = select(orders_tbl).where(*criteria).order_by(orders_tbl.c.created_at.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._execute(stmt)
        rows = result.fetchall()
        if not rows:
            return []

        assets = await self._execute(
            select(order_assets_tbl)
            .where(order_assets_tbl.c.order_id.in_([row.id for row in rows]))
            .order_by(order_assets_tbl.c.order_id, order_assets_tbl.c.position)
        )
        refs_by_order = {}
        for asset in assets.fetchall():
            refs_by_order.setdefault(asset.order_id, []).append(asset.asset_ref)

        return [self._to_domain(row, refs_by_order.get(row.id, [])) for row in rows]

    async def _execute(self, stmt, params=None):
        try:
            if params is None:
                return await self._session.execute(stmt)
            return await self._session.execute(stmt, params)
        except SQLAlchemyError as e:
            raise StorageError(f"Ошибка базы данных: {e}") from e

    def _to_domain(self, row, asset_refs: List[str]) -> Order:
        """Трансформация DB → Domain"""
        return Order(
            id=row.id,
            status=OrderStatus.parse(row.status),
            user_id=row.user_id,
            pickup_code=row.pickup_code,
            print_settings=PrintSettings.model_validate(row.print_settings),
            amount=row.amount,
            total_pages=row.total_pages,
            asset_refs=asset_refs,
            payment_ref=row.payment_ref,
            payment_id=row.payment_id,
            reprint_of=row.reprint_of,
            detached_asset_refs=list(row.detached_asset_refs or []),
            version=row.version,
            created_at=_aware(row.created_at),
            expires_at=_aware(row.expires_at),
            updated_at=_aware(row.updated_at),
            printed_at=_aware(row.printed_at),
            reclaim_started_at=_aware(row.reclaim_started_at),
            reclaimed_at=_aware(row.reclaimed_at),
        )
