import json
import logging
from aiokafka import AIOKafkaProducer

from print_kiosk.domain.exceptions import StorageError
from print_kiosk.application.interfaces import ReclamationDispatcher

logger = logging.getLogger(__name__)


class KafkaReclamationPublisher(ReclamationDispatcher):
    """Публикует order.completed — очистку выполняет reclamation_consumer"""

    def __init__(self, bootstrap_servers: str, topic: str):
        self._bootstrap_servers = bootstrap_servers
        self._producer: AIOKafkaProducer | None = None
        self._topic = topic

    async def start(self):
        if not self._producer:
            self._producer = AIOKafkaProducer(
                bootstrap_servers=self._bootstrap_servers
            )
            await self._producer.start()
            logger.info("Kafka producer started")

    async def stop(self):
        if self._producer:
            await self._producer.stop()
            self._producer = None
            logger.info("Kafka producer stopped")

    async def dispatch(self, order_id: str) -> None:
        if not self._producer:
            raise StorageError("Kafka producer not started")

        event = {
            "event_type": "order.completed",
            "order_id": order_id,
            "idempotency_key": f"order_completed_{order_id}",
        }
        await self._producer.send_and_wait(
            topic=self._topic,
            key=order_id.encode(),
            value=json.dumps(event).encode()
        )
        logger.info(f"Published order.completed for order {order_id}")
