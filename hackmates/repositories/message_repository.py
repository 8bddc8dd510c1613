from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from loguru import logger
from pydantic import ValidationError as SchemaError

from hackmates.constants import MESSAGES_COLLECTION
from hackmates.database.document_store import DocumentStore, OnError, Subscription
from hackmates.database.filters import AllOf, AnyOf, ArrayContains, Eq, ascending, descending
from hackmates.errors import ValidationError
from hackmates.models.message import MessageDocument
from hackmates.schemas.message import Message


OnMessages = Callable[[List[Message]], Awaitable[None]]


def decode_messages(docs: Iterable[Dict[str, Any]]) -> List[Message]:
    messages: List[Message] = []
    for doc in docs:
        try:
            messages.append(Message.from_document(doc))
        except SchemaError as exc:
            logger.warning("dropping malformed message {}: {}", doc.get("_id"), exc.errors())
    return messages


def between(user_a: str, user_b: str) -> AnyOf:
    return AnyOf(
        AllOf(Eq("sender_id", user_a), Eq("receiver_id", user_b)),
        AllOf(Eq("sender_id", user_b), Eq("receiver_id", user_a)),
    )


def involving(user_id: str) -> ArrayContains:
    return ArrayContains("participants", user_id)


class MessageRepository:

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def send(self, sender_id: str, receiver_id: str, content: str) -> Message:
        if not sender_id or not receiver_id:
            raise ValidationError("Sender and receiver are required")
        if not content or not content.strip():
            raise ValidationError("Message content cannot be empty")
        doc: MessageDocument = {
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "content": content.strip(),
            "timestamp": datetime.now(timezone.utc),
            "participants": [sender_id, receiver_id],
        }
        doc["_id"] = await self._store.create(MESSAGES_COLLECTION, doc)
        return Message.from_document(doc)

    async def list_conversation_messages(self, user_a: str, user_b: str) -> List[Message]:
        docs = await self._store.query_many(MESSAGES_COLLECTION, between(user_a, user_b), ascending("timestamp"))
        return decode_messages(docs)

    async def list_user_messages(self, user_id: str) -> List[Message]:
        docs = await self._store.query_many(MESSAGES_COLLECTION, involving(user_id), descending("timestamp"))
        return decode_messages(docs)

    async def subscribe_conversation_messages(
        self,
        user_a: str,
        user_b: str,
        on_change: OnMessages,
        on_error: Optional[OnError] = None,
    ) -> Subscription:
        """Oldest first, redelivered in full after every new message between the pair."""

        async def deliver(docs: List[Dict[str, Any]]) -> None:
            await on_change(decode_messages(docs))

        return await self._store.subscribe(
            MESSAGES_COLLECTION, between(user_a, user_b), ascending("timestamp"), deliver, on_error
        )

    async def subscribe_user_messages(
        self,
        user_id: str,
        on_change: OnMessages,
        on_error: Optional[OnError] = None,
    ) -> Subscription:
        """Newest first, every message the user sent or received."""

        async def deliver(docs: List[Dict[str, Any]]) -> None:
            await on_change(decode_messages(docs))

        return await self._store.subscribe(
            MESSAGES_COLLECTION, involving(user_id), descending("timestamp"), deliver, on_error
        )

    async def ensure_indexes(self) -> None:
        collection = self._store.db[MESSAGES_COLLECTION]
        await collection.create_index([("participants", 1), ("timestamp", -1)])
        await collection.create_index([("sender_id", 1), ("receiver_id", 1), ("timestamp", 1)])
