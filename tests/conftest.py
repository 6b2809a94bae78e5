"""
Pytest fixtures for print kiosk tests.

Use cases run against the in-memory repository with a fake clock;
async code is driven with asyncio.run.
"""
from datetime import datetime, timedelta, timezone

import pytest

from print_kiosk.application.create_order import CreateOrderUseCase, CreateOrderDTO
from print_kiosk.application.pickup_codes import PickupCodeAllocator
from print_kiosk.application.reclaim import ReclamationSweeper
from print_kiosk.application.shared_assets import SharedAssetGuard

from fakes import (
    FakeClock, InMemoryOrderRepository, InMemoryUnitOfWork, FakeObjectStore, FakePaymentGateway,
    RecordingDispatcher,
)

T0 = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
TTL = timedelta(hours=24)

PRINT_SETTINGS = {
    "files": [
        {"color": "COLOR", "pageCount": 2, "copies": 1},
        {"color": "BW", "pageCount": 3, "copies": 2},
    ]
}


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def repo(clock):
    return InMemoryOrderRepository(clock)


@pytest.fixture
def uow(repo):
    return InMemoryUnitOfWork(repo)


@pytest.fixture
def allocator(uow):
    return PickupCodeAllocator(uow)


@pytest.fixture
def create_order(uow, allocator, clock):
    return CreateOrderUseCase(uow, allocator, ttl=TTL, clock=clock)


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def sweeper(uow, store, clock):
    return ReclamationSweeper(
        uow,
        store,
        SharedAssetGuard(uow),
        ttl=TTL,
        completed_retention=timedelta(minutes=10),
        reclaim_timeout=0.5,
        clock=clock,
    )


@pytest.fixture
def new_order(create_order):
    """Фабрика: async new_order(asset_refs=..., prepaid=True, ...) -> Order"""
    async def _make(asset_refs=("doc-1.pdf",), prepaid=True, payment_ref=None, print_settings=None):
        return await create_order(CreateOrderDTO(
            print_settings=print_settings or PRINT_SETTINGS,
            asset_refs=list(asset_refs),
            prepaid=prepaid,
            payment_ref=payment_ref,
        ))
    return _make
