import asyncio

import pytest

from print_kiosk.application.attach_assets import AttachAssetsUseCase
from print_kiosk.application.create_reprint import CreateReprintUseCase
from print_kiosk.application.mark_printed import MarkPrintedUseCase
from print_kiosk.application.redeem_pickup_code import RedeemPickupCodeUseCase
from print_kiosk.domain.exceptions import InvalidStateError, ValidationError, NoAssetsError, NotFoundError
from print_kiosk.domain.models import OrderStatus


@pytest.fixture
def attach(uow):
    return AttachAssetsUseCase(uow)


def test_assets_can_be_attached_to_unpaid_order(new_order, attach):
    order = asyncio.run(new_order(asset_refs=(), prepaid=False))

    updated = asyncio.run(attach(order.id, ["a.pdf", "b.pdf"]))

    assert updated.asset_refs == ["a.pdf", "b.pdf"]
    assert updated.version == order.version + 1


def test_unpaid_order_assets_are_replaced_whole(new_order, attach):
    order = asyncio.run(new_order(asset_refs=("old.pdf",), prepaid=False))

    updated = asyncio.run(attach(order.id, ["new.pdf"]))

    assert updated.asset_refs == ["new.pdf"]


def test_same_list_is_a_noop(new_order, attach):
    order = asyncio.run(new_order(asset_refs=("a.pdf",)))

    same = asyncio.run(attach(order.id, ["a.pdf"]))

    assert same.version == order.version


def test_active_order_with_assets_rejects_other_list(new_order, attach):
    order = asyncio.run(new_order(asset_refs=("a.pdf",)))

    with pytest.raises(InvalidStateError):
        asyncio.run(attach(order.id, ["b.pdf"]))


def test_active_order_without_assets_accepts_them(new_order, attach):
    order = asyncio.run(new_order(asset_refs=()))

    updated = asyncio.run(attach(order.id, ["late.pdf"]))

    assert updated.status == OrderStatus.ACTIVE
    assert updated.asset_refs == ["late.pdf"]
    assert updated.pickup_code == order.pickup_code


def test_printing_order_rejects_assets(new_order, attach, uow, clock):
    order = asyncio.run(new_order(asset_refs=("a.pdf",)))
    asyncio.run(RedeemPickupCodeUseCase(uow, clock=clock)(order.pickup_code))

    with pytest.raises(InvalidStateError):
        asyncio.run(attach(order.id, ["b.pdf"]))


@pytest.mark.parametrize("refs", [[], ["a.pdf", "a.pdf"], [""]])
def test_bad_asset_lists_are_rejected(new_order, attach, refs):
    order = asyncio.run(new_order(asset_refs=(), prepaid=False))

    with pytest.raises(ValidationError):
        asyncio.run(attach(order.id, refs))


def test_attach_to_unknown_order(attach):
    with pytest.raises(NotFoundError):
        asyncio.run(attach("ORD_missing", ["a.pdf"]))


def test_reprint_shares_assets_and_settings(new_order, create_order, uow):
    source = asyncio.run(new_order(asset_refs=("a.pdf", "b.pdf")))

    reprint = asyncio.run(CreateReprintUseCase(uow, create_order)(source.id))

    assert reprint.id != source.id
    assert reprint.reprint_of == source.id
    assert reprint.asset_refs == ["a.pdf", "b.pdf"]
    assert reprint.print_settings == source.print_settings
    assert reprint.amount == source.amount
    assert reprint.status == OrderStatus.CREATED


def test_reprint_with_payment_ref_waits_for_payment(new_order, create_order, uow):
    source = asyncio.run(new_order())

    reprint = asyncio.run(CreateReprintUseCase(uow, create_order)(source.id, payment_ref="order_rzp_5"))

    assert reprint.status == OrderStatus.PENDING_PAYMENT
    assert reprint.payment_ref == "order_rzp_5"


def _completed(new_order, uow, clock, dispatcher):
    async def scenario():
        order = await new_order(asset_refs=("a.pdf",))
        await RedeemPickupCodeUseCase(uow, clock=clock)(order.pickup_code)
        return await MarkPrintedUseCase(uow, dispatcher, clock=clock)(order.id)
    return asyncio.run(scenario())


def test_completed_order_is_not_reprinted_by_default(new_order, create_order, uow, clock, dispatcher):
    source = _completed(new_order, uow, clock, dispatcher)

    with pytest.raises(InvalidStateError):
        asyncio.run(CreateReprintUseCase(uow, create_order)(source.id))


def test_diagnostic_mode_reprints_completed_order(new_order, create_order, uow, clock, dispatcher):
    source = _completed(new_order, uow, clock, dispatcher)

    reprint = asyncio.run(CreateReprintUseCase(uow, create_order, allow_completed=True)(source.id))

    assert reprint.reprint_of == source.id
    assert reprint.asset_refs == ["a.pdf"]


def test_reprint_without_assets_fails(new_order, create_order, uow):
    source = asyncio.run(new_order(asset_refs=()))

    with pytest.raises(NoAssetsError):
        asyncio.run(CreateReprintUseCase(uow, create_order)(source.id))


def test_reprint_of_unknown_order(create_order, uow):
    with pytest.raises(NotFoundError):
        asyncio.run(CreateReprintUseCase(uow, create_order)("ORD_missing"))


def test_replaced_files_are_reclaimed_with_the_order(new_order, attach, sweeper, store, clock, repo):
    order = asyncio.run(new_order(asset_refs=(), prepaid=False))
    asyncio.run(attach(order.id, ["old.pdf"]))

    updated = asyncio.run(attach(order.id, ["new.pdf"]))
    assert updated.detached_asset_refs == ["old.pdf"]

    clock.advance(hours=25)
    asyncio.run(sweeper.sweep())

    assert sorted(store.deleted) == ["new.pdf", "old.pdf"]
    assert repo.all()[0].detached_asset_refs == []


def test_reattached_file_is_not_detached(new_order, attach):
    order = asyncio.run(new_order(asset_refs=(), prepaid=False))
    asyncio.run(attach(order.id, ["a.pdf"]))
    asyncio.run(attach(order.id, ["b.pdf"]))

    updated = asyncio.run(attach(order.id, ["a.pdf"]))

    assert updated.asset_refs == ["a.pdf"]
    assert updated.detached_asset_refs == ["b.pdf"]
