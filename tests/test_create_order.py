import asyncio

import pytest

from print_kiosk.application.create_order import CreateOrderDTO
from print_kiosk.domain.exceptions import ValidationError, InvalidStateError
from print_kiosk.domain.models import OrderStatus

from conftest import T0, TTL, PRINT_SETTINGS


def test_order_without_payment_starts_created(create_order):
    order = asyncio.run(create_order(CreateOrderDTO(print_settings=PRINT_SETTINGS)))

    assert order.id.startswith("ORD_")
    assert order.status == OrderStatus.CREATED
    assert order.pickup_code is None
    assert order.amount == 38
    assert order.total_pages == 8
    assert order.created_at == T0
    assert order.expires_at == T0 + TTL


def test_order_with_gateway_ref_waits_for_payment(create_order):
    order = asyncio.run(create_order(CreateOrderDTO(print_settings=PRINT_SETTINGS, payment_ref="order_rzp_1")))

    assert order.status == OrderStatus.PENDING_PAYMENT
    assert order.payment_ref == "order_rzp_1"
    assert order.pickup_code is None


def test_prepaid_order_is_active_with_code(new_order, repo):
    order = asyncio.run(new_order(prepaid=True))

    assert order.status == OrderStatus.ACTIVE
    assert len(order.pickup_code) == 6 and order.pickup_code.isdigit()
    assert repo.all()[0].pickup_code == order.pickup_code


def test_invalid_settings_store_nothing(create_order, repo):
    with pytest.raises(ValidationError):
        asyncio.run(create_order(CreateOrderDTO(print_settings={"files": []})))

    assert repo.all() == []


def test_prepaid_order_changed_before_activation(create_order, repo, monkeypatch):
    insert = repo.create

    async def insert_then_expire(order):
        await insert(order)
        await repo.conditional_update(order.id, OrderStatus.CREATED, {"status": OrderStatus.EXPIRED})

    monkeypatch.setattr(repo, "create", insert_then_expire)

    with pytest.raises(InvalidStateError):
        asyncio.run(create_order(CreateOrderDTO(print_settings=PRINT_SETTINGS, prepaid=True)))

    assert repo.all()[0].pickup_code is None
