from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    CREATED = "CREATED"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    ACTIVE = "ACTIVE"
    PRINTING = "PRINTING"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"

    @classmethod
    def parse(cls, value) -> "OrderStatus":
        """Приводит старые значения статуса (active, printed, PENDING) к enum"""
        if isinstance(value, cls):
            return value
        raw = str(value).strip().upper()
        return _LEGACY_STATUSES.get(raw) or cls(raw)


_LEGACY_STATUSES = {
    "PENDING": OrderStatus.PENDING_PAYMENT,
    "PRINTED": OrderStatus.COMPLETED,
}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.EXPIRED})
CODE_HOLDING_STATUSES = frozenset({OrderStatus.ACTIVE, OrderStatus.PRINTING})
UNPAID_STATUSES = frozenset({OrderStatus.CREATED, OrderStatus.PENDING_PAYMENT})

ALLOWED_TRANSITIONS = {
    OrderStatus.CREATED: frozenset({OrderStatus.PENDING_PAYMENT, OrderStatus.ACTIVE, OrderStatus.EXPIRED}),
    OrderStatus.PENDING_PAYMENT: frozenset({OrderStatus.ACTIVE, OrderStatus.EXPIRED}),
    OrderStatus.ACTIVE: frozenset({OrderStatus.PRINTING, OrderStatus.EXPIRED}),
    OrderStatus.PRINTING: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.EXPIRED: frozenset(),
}


class ColorMode(str, Enum):
    COLOR = "COLOR"
    BW = "BW"


class PrintFile(BaseModel):
    """Value Object — один файл в задании на печать"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: Optional[str] = None
    color: ColorMode = ColorMode.BW
    # Клиенты киоска присылают pageCount
    page_count: int = Field(default=1, alias="pageCount")
    copies: int = 1


class PrintSettings(BaseModel):
    """Value Object — снимок настроек печати на момент создания заказа"""
    model_config = ConfigDict(frozen=True)

    files: tuple[PrintFile, ...]


class Order(BaseModel):
    """Domain Entity — заказ на печать"""
    id: str
    status: OrderStatus
    print_settings: PrintSettings
    amount: int
    total_pages: int
    user_id: str = "guest"
    pickup_code: Optional[str] = None
    asset_refs: list[str] = Field(default_factory=list)
    payment_ref: Optional[str] = None
    payment_id: Optional[str] = None
    reprint_of: Optional[str] = None
    created_at: datetime
    expires_at: datetime
    updated_at: datetime
    printed_at: Optional[datetime] = None
    reclaim_started_at: Optional[datetime] = None
    reclaimed_at: Optional[datetime] = None
    detached_asset_refs: list[str] = Field(default_factory=list)
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_reclaimed(self) -> bool:
        return self.reclaimed_at is not None

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def can_be_paid(self) -> bool:
        """Бизнес-правило: оплатить можно только неоплаченный заказ"""
        return self.status in UNPAID_STATUSES

    def can_accept_assets(self) -> bool:
        return self.status in UNPAID_STATUSES or self.status == OrderStatus.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_stale(self, now: datetime, ttl: timedelta) -> bool:
        return self.created_at <= now - ttl
