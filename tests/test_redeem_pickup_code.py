import asyncio

import pytest

from print_kiosk.application.redeem_pickup_code import RedeemPickupCodeUseCase
from print_kiosk.domain.exceptions import (
    NotFoundError, InvalidStateError, ExpiredError, AlreadyPrintedError, NoAssetsError
)
from print_kiosk.domain.models import OrderStatus


@pytest.fixture
def redeem(uow, clock):
    return RedeemPickupCodeUseCase(uow, clock=clock)


def test_redeem_moves_order_to_printing(new_order, redeem):
    order = asyncio.run(new_order())

    printing = asyncio.run(redeem(order.pickup_code))

    assert printing.id == order.id
    assert printing.status == OrderStatus.PRINTING
    assert printing.pickup_code == order.pickup_code


def test_unknown_code(redeem):
    with pytest.raises(NotFoundError):
        asyncio.run(redeem("000000"))


def test_second_redeem_reports_already_printed(new_order, redeem):
    order = asyncio.run(new_order())
    asyncio.run(redeem(order.pickup_code))

    with pytest.raises(AlreadyPrintedError):
        asyncio.run(redeem(order.pickup_code))


def test_fifty_concurrent_redeems_have_one_winner(new_order, redeem, repo):
    order = asyncio.run(new_order())

    async def scenario():
        return await asyncio.gather(*(redeem(order.pickup_code) for _ in range(50)), return_exceptions=True)

    results = asyncio.run(scenario())
    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]

    assert len(winners) == 1
    assert len(losers) == 49
    assert all(isinstance(e, (AlreadyPrintedError, InvalidStateError)) for e in losers)
    assert repo.all()[0].status == OrderStatus.PRINTING
    assert repo.all()[0].version == order.version + 1


def test_code_past_deadline_is_expired(new_order, redeem, clock, repo):
    order = asyncio.run(new_order())
    clock.advance(hours=24, seconds=1)

    with pytest.raises(ExpiredError):
        asyncio.run(redeem(order.pickup_code))
    assert repo.all()[0].status == OrderStatus.ACTIVE


def test_order_without_files_cannot_print(new_order, redeem):
    order = asyncio.run(new_order(asset_refs=()))

    with pytest.raises(NoAssetsError):
        asyncio.run(redeem(order.pickup_code))
