import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from print_kiosk.application.reclaim import ReclaimOutcome
from print_kiosk.domain.exceptions import StorageError
from print_kiosk.infrastructure.kafka_producer import KafkaReclamationPublisher
from print_kiosk.presentation.reclamation_consumer import make_handler


def _sweeper():
    sweeper = MagicMock()
    sweeper.reclaim_timeout = 1.0
    sweeper.reclaim_order = AsyncMock(return_value=ReclaimOutcome.RECLAIMED)
    return sweeper


def test_order_completed_event_reclaims_order():
    sweeper = _sweeper()
    handler = make_handler(sweeper)

    asyncio.run(handler({"event_type": "order.completed", "order_id": "ORD_1"}))

    sweeper.reclaim_order.assert_awaited_once_with("ORD_1")


def test_unknown_event_is_ignored():
    sweeper = _sweeper()

    asyncio.run(make_handler(sweeper)({"event_type": "order.created", "order_id": "ORD_1"}))

    sweeper.reclaim_order.assert_not_awaited()


def test_publisher_sends_order_completed():
    publisher = KafkaReclamationPublisher("localhost:9092", "print_kiosk-order.completed")
    publisher._producer = AsyncMock()

    asyncio.run(publisher.dispatch("ORD_1"))

    kwargs = publisher._producer.send_and_wait.await_args.kwargs
    assert kwargs["topic"] == "print_kiosk-order.completed"
    assert kwargs["key"] == b"ORD_1"
    assert json.loads(kwargs["value"]) == {
        "event_type": "order.completed",
        "order_id": "ORD_1",
        "idempotency_key": "order_completed_ORD_1",
    }


def test_publisher_must_be_started():
    publisher = KafkaReclamationPublisher("localhost:9092", "print_kiosk-order.completed")

    with pytest.raises(StorageError):
        asyncio.run(publisher.dispatch("ORD_1"))
