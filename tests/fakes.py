import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Optional, List, Iterable

from print_kiosk.domain.models import Order, OrderStatus
from print_kiosk.domain.exceptions import DuplicateError, NotFoundError, PreconditionFailed, StorageError
from print_kiosk.application.interfaces import OrderRepository, ObjectStore, PaymentGateway, ReclamationDispatcher


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryOrderRepository(OrderRepository):
    """Каждый метод уступает цикл событий, но проверка и запись идут без await между ними"""

    def __init__(self, clock):
        self._orders: dict[str, Order] = {}
        self._clock = clock

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        await asyncio.sleep(0)
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    async def create(self, order: Order) -> None:
        await asyncio.sleep(0)
        if order.id in self._orders:
            raise DuplicateError(order.id)
        self._orders[order.id] = order.model_copy(deep=True)

    async def conditional_update(self, order_id, expected_status, patch, expected_version=None) -> Order:
        await asyncio.sleep(0)
        current = self._orders.get(order_id)
        if current is None:
            raise NotFoundError(order_id)
        if current.status != expected_status or (
            expected_version is not None and current.version != expected_version
        ):
            raise PreconditionFailed(order_id, expected_status, current.status)
        code = patch.get("pickup_code")
        if code is not None and any(
            o.pickup_code == code and o.id != order_id for o in self._orders.values()
        ):
            raise DuplicateError(code)

        update = {k: list(v) if isinstance(v, list) else v for k, v in patch.items()}
        update["version"] = current.version + 1
        update["updated_at"] = self._clock()
        self._orders[order_id] = current.model_copy(update=update)
        return self._orders[order_id].model_copy(deep=True)

    async def delete(self, order_id: str) -> None:
        await asyncio.sleep(0)
        self._orders.pop(order_id, None)

    async def query_by_status_and_age(self, statuses: Iterable[OrderStatus], older_than, limit=None) -> List[Order]:
        statuses = set(statuses)
        return self._query(lambda o: o.status in statuses and o.created_at <= older_than, limit)

    async def query_by_code(self, code: str) -> List[Order]:
        return self._query(lambda o: o.pickup_code == code)

    async def query_by_asset_ref(self, asset_ref: str, limit=None) -> List[Order]:
        return self._query(lambda o: asset_ref in o.asset_refs, limit)

    async def query_unreclaimed(self, statuses: Iterable[OrderStatus], settled_before, limit=None) -> List[Order]:
        statuses = set(statuses)
        return self._query(
            lambda o: o.status in statuses and o.reclaimed_at is None and o.updated_at <= settled_before,
            limit,
        )

    def _query(self, predicate, limit=None) -> List[Order]:
        found = sorted((o for o in self._orders.values() if predicate(o)), key=lambda o: o.created_at)
        if limit is not None:
            found = found[:limit]
        return [o.model_copy(deep=True) for o in found]

    def all(self) -> List[Order]:
        return list(self._orders.values())


class InMemoryUnitOfWork:
    def __init__(self, repository: InMemoryOrderRepository):
        self.orders = repository
        self.commits = 0

    @asynccontextmanager
    async def __call__(self):
        yield self

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        pass


class FakeObjectStore(ObjectStore):
    def __init__(self):
        self.deleted: List[str] = []
        self.failing: set[str] = set()
        self.hanging: set[str] = set()

    async def delete(self, asset_ref: str) -> None:
        if asset_ref in self.hanging:
            await asyncio.sleep(3600)
        if asset_ref in self.failing:
            raise StorageError(f"store unavailable for {asset_ref}")
        self.deleted.append(asset_ref)


class FakePaymentGateway(PaymentGateway):
    def __init__(self):
        self.refunds = []
        self.opened = []

    @staticmethod
    def sign(order_ref: str, payment_ref: str) -> str:
        return f"sig:{order_ref}|{payment_ref}"

    def verify_signature(self, order_ref: str, payment_ref: str, signature: str) -> bool:
        return signature == self.sign(order_ref, payment_ref)

    async def create_order(self, amount: int, receipt: str) -> dict:
        self.opened.append((amount, receipt))
        return {"id": f"order_rzp_{len(self.opened)}", "amount": amount * 100}

    async def refund(self, payment_id: str, amount=None) -> dict:
        self.refunds.append((payment_id, amount))
        return {"id": "rfnd_1", "payment_id": payment_id}


class RecordingDispatcher(ReclamationDispatcher):
    def __init__(self, error: Exception | None = None):
        self.dispatched: List[str] = []
        self._error = error

    async def dispatch(self, order_id: str) -> None:
        self.dispatched.append(order_id)
        if self._error:
            raise self._error
