from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Iterable
from print_kiosk.domain.models import Order, OrderStatus


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        """DuplicateError, если заказ с таким id уже есть"""
        pass

    @abstractmethod
    async def conditional_update(
        self,
        order_id: str,
        expected_status: OrderStatus,
        patch: dict,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Обновляет заказ только если статус (и версия) совпадают.

        PreconditionFailed — статус/версия изменились,
        NotFoundError — заказа нет,
        DuplicateError — pickup_code уже занят живым заказом.
        """
        pass

    @abstractmethod
    async def delete(self, order_id: str) -> None:
        pass

    @abstractmethod
    async def query_by_status_and_age(
        self, statuses: Iterable[OrderStatus], older_than: datetime, limit: Optional[int] = None
    ) -> List[Order]:
        pass

    @abstractmethod
    async def query_by_code(self, code: str) -> List[Order]:
        pass

    @abstractmethod
    async def query_by_asset_ref(self, asset_ref: str, limit: Optional[int] = None) -> List[Order]:
        pass

    @abstractmethod
    async def query_unreclaimed(
        self, statuses: Iterable[OrderStatus], settled_before: datetime, limit: Optional[int] = None
    ) -> List[Order]:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @abstractmethod
    async def __call__(self):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class PaymentGateway(ABC):
    @abstractmethod
    def verify_signature(self, order_ref: str, payment_ref: str, signature: str) -> bool:
        pass

    @abstractmethod
    async def create_order(self, amount: int, receipt: str) -> dict:
        pass

    @abstractmethod
    async def refund(self, payment_id: str, amount: Optional[int] = None) -> dict:
        pass


class ObjectStore(ABC):
    @abstractmethod
    async def delete(self, asset_ref: str) -> None:
        """Идемпотентно: удаление отсутствующего файла — успех"""
        pass


class ReclamationDispatcher(ABC):
    @abstractmethod
    async def dispatch(self, order_id: str) -> None:
        pass
