import asyncio
import logging
import sys

from print_kiosk.config import settings
from print_kiosk.infrastructure.kafka_consumer import KafkaConsumerClient
from print_kiosk.application.reclaim import ReclamationSweeper
from print_kiosk.presentation.factories import build_sweeper

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                    handlers=[logging.StreamHandler(sys.stdout)])
logger = logging.getLogger(__name__)


def make_handler(sweeper: ReclamationSweeper):
    async def handle_order_completed(event_data: dict):
        """Очищает заказ по событию order.completed"""
        if event_data.get("event_type") != "order.completed":
            logger.warning(f"Пропускаем неизвестный тип: {event_data.get('event_type')}")
            return
        order_id = event_data["order_id"]
        outcome = await asyncio.wait_for(sweeper.reclaim_order(order_id), timeout=sweeper.reclaim_timeout)
        logger.info(f"Заказ {order_id}: {outcome.value}")

    return handle_order_completed


async def reclamation_consumer():
    logger.info("Reclamation consumer started")

    consumer = KafkaConsumerClient(settings.KAFKA_BOOTSTRAP_SERVERS, settings.RECLAMATION_TOPIC)
    await consumer.start()

    try:
        await consumer.consume(make_handler(build_sweeper()))
    finally:
        await consumer.stop()


async def main():
    await reclamation_consumer()


if __name__ == "__main__":
    asyncio.run(main())
