import asyncio
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional

from bson import ObjectId, json_util
from bson.errors import InvalidId
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, DuplicateKeyError, OperationFailure, PyMongoError

from hackmates.errors import HackmatesError, PermissionDeniedError, TransportError, ValidationError


Record = Dict[str, Any]
OnChange = Callable[[List[Record]], Awaitable[None]]
OnError = Callable[[HackmatesError], Awaitable[None]]

# Mongo error codes for Unauthorized and AuthenticationFailed
_PERMISSION_CODES = {13, 18}


@contextmanager
def translate_errors() -> Iterator[None]:
    try:
        yield
    except DuplicateKeyError as exc:
        raise ValidationError("Record already exists") from exc
    except OperationFailure as exc:
        if exc.code in _PERMISSION_CODES:
            raise PermissionDeniedError(str(exc)) from exc
        raise TransportError(str(exc)) from exc
    except ConnectionFailure as exc:
        raise TransportError(str(exc)) from exc
    except PyMongoError as exc:
        raise TransportError(str(exc)) from exc


def to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _normalize(record: Record) -> Record:
    record["_id"] = str(record.get("_id"))
    return record


def collection_channel(collection: str) -> str:
    return f"collection:{collection}"


class Subscription:
    """Live query handle.

    Delivers the full result of the query once on start and again after every
    insert announced on the bus that matches ``where``. Deliveries are
    serialized, so snapshots arrive in the order they were taken. The owner
    must call ``unsubscribe``; it is synchronous and safe to call repeatedly.
    """

    def __init__(self, store: "DocumentStore", collection: str, where, order_by, on_change: OnChange, on_error: Optional[OnError] = None) -> None:
        self._store = store
        self._collection = collection
        self._where = where
        self._order_by = order_by
        self._on_change = on_change
        self._on_error = on_error
        self._lock = asyncio.Lock()
        self._subscriber = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self) -> "Subscription":
        # listen before the first query so no insert falls between the two
        subscriber = await self._store.bus.subscribe(collection_channel(self._collection), self._on_bus_message)
        if self._closed:
            await subscriber.cancel()
            return self
        self._subscriber = subscriber
        self._task = asyncio.create_task(self._run())
        logger.debug("subscription opened on {}", self._collection)
        try:
            await self._refresh()
        except HackmatesError as exc:
            await self._fail(exc)
        except BaseException:
            self.unsubscribe()
            raise
        return self

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        # a failing listener task closes itself and cleans up on the way out
        if self._task is not None and not self._task.done() and self._task is not _current_task():
            self._task.cancel()
        logger.debug("subscription closed on {}", self._collection)

    async def _run(self) -> None:
        try:
            await self._subscriber.run()
        except HackmatesError as exc:
            await self._fail(exc)
        except Exception as exc:
            logger.exception("listener for {} stopped", self._collection)
            await self._fail(TransportError(str(exc) or type(exc).__name__))
        finally:
            await self._subscriber.cancel()

    async def _on_bus_message(self, payload: str) -> None:
        record = json_util.loads(payload)
        if self._where.matches(record):
            await self._refresh()

    async def _refresh(self) -> None:
        async with self._lock:
            if self._closed:
                return
            records = await self._store.query_many(self._collection, self._where, self._order_by)
            if self._closed:
                return
            try:
                await self._on_change(records)
            except Exception:
                logger.exception("subscriber callback on {} failed", self._collection)

    async def _fail(self, exc: HackmatesError) -> None:
        if self._closed:
            return
        logger.warning("subscription on {} failed: {}", self._collection, exc)
        if self._on_error is not None:
            try:
                await self._on_error(exc)
            except Exception:
                logger.exception("error callback on {} failed", self._collection)
        # no retry, the owner decides whether to open a new subscription
        self.unsubscribe()


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class DocumentStore:

    def __init__(self, db: AsyncIOMotorDatabase, bus) -> None:
        self._db = db
        self.bus = bus

    @property
    def db(self) -> AsyncIOMotorDatabase:
        return self._db

    async def create(self, collection: str, record: Record) -> str:
        doc = dict(record)
        with translate_errors():
            result = await self._db[collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        await self.bus.publish(collection_channel(collection), json_util.dumps(doc))
        return str(result.inserted_id)

    async def get_one(self, collection: str, record_id: str) -> Optional[Record]:
        oid = to_object_id(record_id)
        if oid is None:
            return None
        with translate_errors():
            doc = await self._db[collection].find_one({"_id": oid})
        return _normalize(doc) if doc else None

    async def query_many(self, collection: str, where=None, order_by=None) -> List[Record]:
        query = where.to_mongo() if where is not None else {}
        with translate_errors():
            cursor = self._db[collection].find(query)
            if order_by:
                cursor = cursor.sort(order_by)
            items = await cursor.to_list(length=None)
        return [_normalize(it) for it in items]

    async def merge(self, collection: str, record_id: str, fields: Record) -> bool:
        """Upsert ``fields`` into the record, leaving other keys untouched."""
        oid = to_object_id(record_id)
        if oid is None:
            return False
        with translate_errors():
            result = await self._db[collection].update_one({"_id": oid}, {"$set": fields}, upsert=True)
        return bool(result.matched_count or result.upserted_id)

    async def subscribe(self, collection: str, where, order_by, on_change: OnChange, on_error: Optional[OnError] = None) -> Subscription:
        subscription = Subscription(self, collection, where, order_by, on_change, on_error)
        return await subscription.start()
