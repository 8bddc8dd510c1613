import asyncio

import pytest
from pymongo.errors import AutoReconnect, DuplicateKeyError, OperationFailure

from hackmates.database.document_store import DocumentStore, translate_errors
from hackmates.errors import PermissionDeniedError, TransportError, ValidationError
from hackmates.repositories.message_repository import MessageRepository

from conftest import Collector


@pytest.mark.parametrize(
    "raised, expected",
    [
        (OperationFailure("not authorized", code=13), PermissionDeniedError),
        (OperationFailure("interrupted", code=11601), TransportError),
        (AutoReconnect("primary stepped down"), TransportError),
        (DuplicateKeyError("E11000 duplicate key", code=11000), ValidationError),
    ],
)
def test_driver_errors_are_translated(raised, expected):
    with pytest.raises(expected):
        with translate_errors():
            raise raised


class FlakyStore(DocumentStore):
    """Answers the first query, then fails every later one with a server error."""

    def __init__(self, db, bus) -> None:
        super().__init__(db, bus)
        self.queries = 0

    async def query_many(self, collection, where=None, order_by=None):
        self.queries += 1
        if self.queries > 1:
            with translate_errors():
                raise OperationFailure("interrupted", code=11601)
        return await super().query_many(collection, where, order_by)


async def test_failure_on_live_refresh_reaches_the_error_callback(db, bus):
    repo = MessageRepository(FlakyStore(db, bus))
    seen, errors = Collector(), Collector()
    sub = await repo.subscribe_conversation_messages("a", "b", seen, errors)
    assert await seen.next() == []

    await repo.send("a", "b", "first")
    error = await errors.next()
    assert isinstance(error, TransportError)
    assert sub.closed

    await repo.send("a", "b", "second")
    assert await errors.nothing_more(0.1)
    assert await seen.nothing_more()
    assert len(seen.calls) == 1
    sub.unsubscribe()


class BrokenBus:
    """Bus whose listener loop dies as soon as it starts."""

    def __init__(self) -> None:
        self.cancelled = 0

    async def publish(self, channel, message):
        return

    async def subscribe(self, channel, on_message):
        bus = self

        class _Sub:

            async def run(self_inner):
                raise ConnectionError("connection reset by peer")

            async def cancel(self_inner):
                bus.cancelled += 1

        return _Sub()


async def test_listener_crash_closes_the_subscription(db):
    bus = BrokenBus()
    repo = MessageRepository(DocumentStore(db, bus))
    seen, errors = Collector(), Collector()
    sub = await repo.subscribe_user_messages("a", seen, errors)

    error = await errors.next()
    assert isinstance(error, TransportError)
    assert "connection reset" in error.detail
    assert sub.closed
    assert bus.cancelled == 1
    sub.unsubscribe()


async def test_failing_error_callback_still_closes(db, bus):
    async def explode(exc):
        raise RuntimeError("socket already closed")

    repo = MessageRepository(FlakyStore(db, bus))
    seen = Collector()
    sub = await repo.subscribe_conversation_messages("a", "b", seen, explode)
    await seen.next()

    await repo.send("b", "a", "hello")
    for _ in range(50):
        if sub.closed:
            break
        await asyncio.sleep(0.01)
    assert sub.closed
