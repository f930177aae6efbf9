import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from aiokafka import TopicPartition  # type: ignore
from aiokafka.errors import (  # type: ignore
    CommitFailedError,
    IllegalStateError,
    KafkaError,
)
from sqlalchemy import select

from inventory_service.app.core.exceptions import PoisonMessageError
from inventory_service.app.events.event_consumers import InventoryEventConsumer
from inventory_service.app.events.event_handlers import build_handler_registry
from inventory_service.app.models.inventory import Inventory
from inventory_service.app.models.processed_event import ProcessedEvent, ProcessingResult


def make_message(value, offset=5, topic="product.events", partition=0):
    if isinstance(value, dict):
        value = json.dumps(value).encode("utf-8")
    return SimpleNamespace(topic=topic, partition=partition, offset=offset, value=value)


def product_created(event_id="evt-1", product_id="p-1", quantity=5):
    return {
        "eventId": event_id,
        "eventType": "product.created",
        "data": {
            "productId": product_id,
            "name": "Mug",
            "sku": "MUG-1",
            "initialQuantity": quantity,
        },
    }


class TestInventoryEventConsumer:
    """Test suite for the Kafka consumer's per-record handling"""

    @pytest.fixture
    def consumer(self, session_factory):
        consumer = InventoryEventConsumer(
            session_factory=session_factory,
            handlers=build_handler_registry(),
            topics=["product.events", "order.events"],
            bootstrap_servers="localhost:9092",
            group_id="inventory-test",
            client_id="inventory-test",
            retry_backoff_seconds=0.01,
        )
        consumer.consumer = Mock()
        consumer.consumer.commit = AsyncMock()
        consumer.consumer.seek = Mock()
        return consumer

    async def _inventory(self, session_factory, product_id):
        async with session_factory() as session:
            result = await session.execute(
                select(Inventory).where(Inventory.product_id == product_id)
            )
            return result.scalar_one_or_none()

    @pytest.mark.asyncio
    async def test_processed_message_commits_next_offset(
        self, consumer, session_factory
    ):
        # Act
        handled = await consumer.handle_message(make_message(product_created(), offset=5))

        # Assert
        assert handled is True
        consumer.consumer.commit.assert_awaited_once_with(
            {TopicPartition("product.events", 0): 6}
        )
        consumer.consumer.seek.assert_not_called()
        assert (await self._inventory(session_factory, "p-1")).quantity == 5

    @pytest.mark.asyncio
    async def test_duplicate_message_is_committed_without_reprocessing(
        self, consumer, session_factory
    ):
        await consumer.handle_message(make_message(product_created(), offset=5))

        handled = await consumer.handle_message(make_message(product_created(), offset=9))

        assert handled is True
        consumer.consumer.commit.assert_awaited_with(
            {TopicPartition("product.events", 0): 10}
        )
        assert (await self._inventory(session_factory, "p-1")).quantity == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "value",
        [
            b"not json",
            b"\xff\xfe",
            {"data": {"productId": "p-1"}},
            {"eventType": "customer.created", "data": {}},
            {"eventId": "evt-1", "eventType": "product.created", "data": {"name": "x"}},
            {"eventType": "order.fulfilled", "data": {"orderId": "o-1", "items": []}},
        ],
        ids=[
            "malformed-json",
            "bad-encoding",
            "missing-type",
            "unknown-type",
            "invalid-payload",
            "empty-order",
        ],
    )
    async def test_poison_messages_are_committed_and_skipped(
        self, consumer, session_factory, value
    ):
        handled = await consumer.handle_message(make_message(value, offset=3))

        assert handled is True
        consumer.consumer.commit.assert_awaited_once_with(
            {TopicPartition("product.events", 0): 4}
        )
        async with session_factory() as session:
            records = (await session.execute(select(ProcessedEvent))).scalars().all()
        assert records == []

    @pytest.mark.asyncio
    async def test_domain_rejection_is_committed(self, consumer, session_factory):
        # Arrange
        await consumer.handle_message(make_message(product_created(quantity=1), offset=1))
        consumer.consumer.commit.reset_mock()
        message = make_message(
            {
                "eventId": "evt-order-1",
                "eventType": "order.fulfilled",
                "data": {"orderId": "o-1", "items": [{"productId": "p-1", "quantity": 2}]},
            },
            topic="order.events",
            offset=11,
        )

        # Act
        handled = await consumer.handle_message(message)

        # Assert
        assert handled is True
        consumer.consumer.commit.assert_awaited_once_with(
            {TopicPartition("order.events", 0): 12}
        )
        consumer.consumer.seek.assert_not_called()
        assert (await self._inventory(session_factory, "p-1")).quantity == 1

    @pytest.mark.asyncio
    async def test_order_for_unknown_inventory_is_redelivered(self, consumer):
        message = make_message(
            {
                "eventId": "evt-order-2",
                "eventType": "order.fulfilled",
                "data": {"orderId": "o-2", "items": [{"productId": "p-9", "quantity": 1}]},
            },
            topic="order.events",
            offset=20,
        )

        handled = await consumer.handle_message(message)

        assert handled is False
        consumer.consumer.seek.assert_called_once_with(
            TopicPartition("order.events", 0), 20
        )
        consumer.consumer.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_order_for_deleted_inventory_is_committed(
        self, consumer, session_factory
    ):
        # Arrange
        await consumer.handle_message(make_message(product_created(), offset=1))
        await consumer.handle_message(
            make_message(
                {
                    "eventId": "evt-del-1",
                    "eventType": "product.deleted",
                    "data": {"productId": "p-1", "deletedBy": "admin-1"},
                },
                offset=2,
            )
        )
        consumer.consumer.commit.reset_mock()
        message = make_message(
            {
                "eventId": "evt-order-3",
                "eventType": "order.fulfilled",
                "data": {"orderId": "o-3", "items": [{"productId": "p-1", "quantity": 1}]},
            },
            topic="order.events",
            offset=30,
        )

        # Act
        handled = await consumer.handle_message(message)

        # Assert
        assert handled is True
        consumer.consumer.commit.assert_awaited_once_with(
            {TopicPartition("order.events", 0): 31}
        )
        consumer.consumer.seek.assert_not_called()
        async with session_factory() as session:
            record = (
                await session.execute(
                    select(ProcessedEvent).where(
                        ProcessedEvent.event_id == "evt-order-3"
                    )
                )
            ).scalar_one()
        assert record.processing_result == ProcessingResult.FAILURE
        assert (await self._inventory(session_factory, "p-1")).quantity == 5

    @pytest.mark.asyncio
    async def test_seek_on_revoked_partition_is_logged_not_raised(self, consumer):
        consumer.consumer.seek = Mock(side_effect=IllegalStateError("not assigned"))
        message = make_message(
            {
                "eventId": "evt-order-4",
                "eventType": "order.fulfilled",
                "data": {"orderId": "o-4", "items": [{"productId": "p-9", "quantity": 1}]},
            },
            topic="order.events",
            offset=40,
        )

        handled = await consumer.handle_message(message)

        assert handled is False
        consumer.consumer.seek.assert_called_once()
        consumer.consumer.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stop_finishes_in_flight_event_before_leaving_group(
        self, consumer, session_factory
    ):
        # Arrange
        steps = []
        entered, release = asyncio.Event(), asyncio.Event()
        handler = consumer.handlers["product.created"]

        async def slow_handle(data, session, event):
            entered.set()
            await release.wait()
            await handler.handle(data, session, event)
            steps.append("handled")

        consumer.handlers = {
            **consumer.handlers,
            "product.created": Mock(data_model=handler.data_model, handle=slow_handle),
        }
        tp = TopicPartition("product.events", 0)
        batches = [{tp: [make_message(product_created(), offset=5)]}]

        async def getmany(timeout_ms):
            await asyncio.sleep(0)
            return batches.pop() if batches else {}

        kafka_consumer = consumer.consumer
        kafka_consumer.getmany = AsyncMock(side_effect=getmany)
        kafka_consumer.commit = AsyncMock(
            side_effect=lambda offsets: steps.append(("commit", offsets))
        )
        kafka_consumer.stop = AsyncMock(side_effect=lambda: steps.append("left group"))
        consumer._task = asyncio.create_task(consumer._consume_loop())
        await asyncio.wait_for(entered.wait(), timeout=1)

        # Act
        stopping = asyncio.create_task(consumer.stop())
        await asyncio.sleep(0.05)
        assert not stopping.done()
        release.set()
        await asyncio.wait_for(stopping, timeout=1)

        # Assert
        assert steps == ["handled", ("commit", {tp: 6}), "left group"]
        assert (await self._inventory(session_factory, "p-1")).quantity == 5

    @pytest.mark.asyncio
    async def test_unexpected_failure_rewinds_partition(self, consumer):
        # Arrange
        handler = consumer.handlers["product.created"]
        consumer.handlers = {
            **consumer.handlers,
            "product.created": Mock(
                data_model=handler.data_model,
                handle=AsyncMock(side_effect=RuntimeError("database unavailable")),
            ),
        }

        # Act
        handled = await consumer.handle_message(make_message(product_created(), offset=5))

        # Assert
        assert handled is False
        consumer.consumer.seek.assert_called_once_with(
            TopicPartition("product.events", 0), 5
        )
        consumer.consumer.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rewound_message_succeeds_on_redelivery(
        self, consumer, session_factory
    ):
        handler = consumer.handlers["product.created"]
        failures = [RuntimeError("transient")]

        async def flaky_handle(data, session, event):
            if failures:
                raise failures.pop()
            await handler.handle(data, session, event)

        consumer.handlers = {
            **consumer.handlers,
            "product.created": Mock(data_model=handler.data_model, handle=flaky_handle),
        }
        message = make_message(product_created(), offset=5)

        assert await consumer.handle_message(message) is False
        assert await consumer.handle_message(message) is True
        assert (await self._inventory(session_factory, "p-1")).quantity == 5

    def test_decode_accepts_payload_alias(self, consumer):
        event = consumer.decode_event(
            json.dumps(
                {"event_type": "product.updated", "payload": {"productId": "p-1"}}
            )
        )

        assert event.event_type == "product.updated"
        assert event.data == {"productId": "p-1"}

    def test_decode_rejects_non_object(self, consumer):
        with pytest.raises(PoisonMessageError):
            consumer.decode_event(b"[1, 2, 3]")


class TestConsumeLoop:
    @pytest.fixture
    def consumer(self):
        consumer = InventoryEventConsumer(
            session_factory=Mock(),
            handlers={},
            topics=["product.events"],
            bootstrap_servers="localhost:9092",
            group_id="inventory-test",
            client_id="inventory-test",
            retry_backoff_seconds=0.01,
        )
        consumer.consumer = Mock()
        return consumer

    @pytest.mark.asyncio
    async def test_loop_stops_batch_after_rewind(self, consumer):
        # Arrange
        tp = TopicPartition("product.events", 0)
        first, second = make_message(b"{}", offset=1), make_message(b"{}", offset=2)
        polls = []

        async def getmany(timeout_ms):
            polls.append(timeout_ms)
            if len(polls) > 1:
                consumer._stop_event.set()
                return {}
            return {tp: [first, second]}

        consumer.consumer.getmany = AsyncMock(side_effect=getmany)
        consumer.handle_message = AsyncMock(return_value=False)

        # Act
        await consumer._consume_loop()

        # Assert
        consumer.handle_message.assert_awaited_once_with(first)

    @pytest.mark.asyncio
    async def test_loop_survives_fetch_errors(self, consumer):
        calls = []

        async def getmany(timeout_ms):
            calls.append(timeout_ms)
            if len(calls) == 1:
                raise KafkaError("broker gone")
            consumer._stop_event.set()
            return {}

        consumer.consumer.getmany = AsyncMock(side_effect=getmany)

        await consumer._consume_loop()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_loop_survives_commit_failure(self, consumer):
        # Arrange
        tp = TopicPartition("product.events", 0)
        polls = []

        async def getmany(timeout_ms):
            polls.append(timeout_ms)
            if len(polls) == 1:
                return {
                    tp: [make_message(b"not json", offset=1), make_message(b"{}", offset=2)]
                }
            consumer._stop_event.set()
            return {}

        consumer.consumer.getmany = AsyncMock(side_effect=getmany)
        consumer.consumer.commit = AsyncMock(side_effect=CommitFailedError("rebalanced"))

        # Act
        await consumer._consume_loop()

        # Assert
        assert len(polls) == 2
        assert consumer.consumer.commit.await_count == 2

    @pytest.mark.asyncio
    async def test_stop_leaves_consumer_group(self, consumer):
        kafka_consumer = consumer.consumer
        kafka_consumer.stop = AsyncMock()

        await consumer.stop()

        kafka_consumer.stop.assert_awaited_once()
        assert consumer.consumer is None
        assert consumer.is_running is False
