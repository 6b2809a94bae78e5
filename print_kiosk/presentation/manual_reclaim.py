import argparse
import asyncio
import logging
import sys

from print_kiosk.config import settings
from print_kiosk.domain.exceptions import NotFoundError
from print_kiosk.application.reclaim import ReclamationSweeper, ReclaimOutcome
from print_kiosk.presentation.factories import build_unit_of_work, build_sweeper

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                    handlers=[logging.StreamHandler(sys.stdout)])
logger = logging.getLogger(__name__)


async def manual_reclaim(sweeper: ReclamationSweeper, uow, order_id: str, force_expire: bool = False) -> ReclaimOutcome:
    """Ручная очистка одного заказа. force_expire — истечь активный заказ досрочно."""
    async with uow() as session:
        order = await session.orders.get_by_id(order_id)
    if not order:
        raise NotFoundError(f"Заказ {order_id} не найден")

    if force_expire and not order.is_terminal:
        await sweeper.expire_order(order_id, force=True)
    return await asyncio.wait_for(sweeper.reclaim_order(order_id), timeout=sweeper.reclaim_timeout)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Очистка файлов и записи заказа")
    parser.add_argument("order_id", help="ID заказа, например ORD_...")
    parser.add_argument("--force-expire", action="store_true", help="истечь неоплаченный/активный заказ")
    args = parser.parse_args(argv)

    uow = build_unit_of_work()
    try:
        outcome = asyncio.run(manual_reclaim(build_sweeper(uow), uow, args.order_id, args.force_expire))
    except NotFoundError as e:
        logger.error(str(e))
        return 1
    except asyncio.TimeoutError:
        logger.error(f"Очистка заказа {args.order_id} не уложилась в {settings.RECLAIM_TIMEOUT_SECONDS}s")
        return 1
    logger.info(f"Заказ {args.order_id}: {outcome.value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
