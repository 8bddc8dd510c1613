import asyncio
from typing import Any, List, Optional

import pytest
from bson import ObjectId
from gridfs.errors import NoFile
from mongomock_motor import AsyncMongoMockClient

from hackmates.config import Settings
from hackmates.database.document_store import DocumentStore
from hackmates.repositories.message_repository import MessageRepository
from hackmates.repositories.user_repository import UserRepository
from hackmates.utils.realtime_bus import LocalBus


class Collector:
    """Async callback that remembers every call and lets a test wait for the next one."""

    def __init__(self) -> None:
        self.calls: List[Any] = []
        self._queue: asyncio.Queue = asyncio.Queue()

    async def __call__(self, *args) -> None:
        value = args[0] if len(args) == 1 else args
        self.calls.append(value)
        self._queue.put_nowait(value)

    async def next(self, timeout: float = 1.0) -> Any:
        return await asyncio.wait_for(self._queue.get(), timeout)

    async def nothing_more(self, wait: float = 0.05) -> bool:
        await asyncio.sleep(wait)
        return self._queue.empty()


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret="test-secret", log_level="WARNING", access_token_minutes=5)


@pytest.fixture
def db():
    return AsyncMongoMockClient()["hackmates_test"]


@pytest.fixture
def bus() -> LocalBus:
    return LocalBus()


@pytest.fixture
def store(db, bus) -> DocumentStore:
    return DocumentStore(db, bus)


@pytest.fixture
def messages(store) -> MessageRepository:
    return MessageRepository(store)


@pytest.fixture
def users(store) -> UserRepository:
    return UserRepository(store)


async def make_user(users: UserRepository, name: Optional[str], email: Optional[str] = None) -> str:
    email = email or f"{(name or 'anon').lower()}@example.com"
    user_id = await users.create_user(email=email, hashed_password="x", full_name=None)
    if name:
        await users.update_profile(user_id, {"name": name})
    return user_id


@pytest.fixture
async def alice(users) -> str:
    return await make_user(users, "Alice")


@pytest.fixture
async def bob(users) -> str:
    return await make_user(users, "Bob")


@pytest.fixture
async def carol(users) -> str:
    return await make_user(users, "Carol")


class MemoryGridOut:

    def __init__(self, data: bytes, metadata: Optional[dict], chunk_size: int = 4) -> None:
        self.metadata = metadata
        self._data = data
        self._chunk_size = chunk_size
        self._pos = 0

    async def readchunk(self) -> bytes:
        chunk = self._data[self._pos:self._pos + self._chunk_size]
        self._pos += len(chunk)
        return chunk


class MemoryBucket:
    """GridFS bucket kept in a dict; mongomock has no GridFS support."""

    def __init__(self) -> None:
        self.files = {}

    async def upload_from_stream(self, filename, source, metadata=None):
        file_id = ObjectId()
        self.files[file_id] = (filename, bytes(source), metadata)
        return file_id

    async def open_download_stream(self, file_id):
        if file_id not in self.files:
            raise NoFile(f"no file with id {file_id}")
        _, data, metadata = self.files[file_id]
        return MemoryGridOut(data, metadata)
