import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from loguru import logger

from hackmates.database.document_store import OnError, Subscription
from hackmates.errors import HackmatesError
from hackmates.repositories.message_repository import MessageRepository
from hackmates.repositories.user_repository import UserRepository
from hackmates.schemas.conversation import ConversationSummary
from hackmates.schemas.message import Message
from hackmates.schemas.user import UserProfile


OnSummaries = Callable[[List[ConversationSummary]], Awaitable[None]]


def counterparts(messages: Iterable[Message], current_user_id: str) -> List[str]:
    """Distinct counterpart ids in the order they first appear."""
    seen: Dict[str, None] = {}
    for message in messages:
        seen.setdefault(message.counterpart_of(current_user_id), None)
    return list(seen)


def build_summaries(
    messages: Iterable[Message],
    current_user_id: str,
    profiles: Mapping[str, Optional[UserProfile]],
) -> List[ConversationSummary]:
    """Reduce a newest-first message list to one summary per counterpart.

    The first message seen for a counterpart is its latest one. Counterparts
    with no entry in ``profiles`` (not fetched yet) or a ``None`` entry
    (profile gone) are left out.
    """
    summaries: List[ConversationSummary] = []
    seen = set()
    for message in messages:
        counterpart_id = message.counterpart_of(current_user_id)
        if counterpart_id in seen:
            continue
        seen.add(counterpart_id)
        profile = profiles.get(counterpart_id)
        if profile is None:
            continue
        summaries.append(
            ConversationSummary(
                counterpart_id=counterpart_id,
                counterpart_name=profile.name,
                counterpart_photo_url=profile.photo_url,
                last_message_content=message.content,
                last_message_timestamp=message.timestamp,
            )
        )
    return summaries


async def list_conversations(
    messages: MessageRepository,
    users: UserRepository,
    current_user_id: str,
) -> List[ConversationSummary]:
    items = await messages.list_user_messages(current_user_id)
    ids = counterparts(items, current_user_id)
    results = await asyncio.gather(*(users.get_profile(i) for i in ids), return_exceptions=True)
    profiles: Dict[str, Optional[UserProfile]] = {}
    for counterpart_id, result in zip(ids, results):
        if isinstance(result, HackmatesError):
            logger.warning("profile lookup for {} failed: {}", counterpart_id, result)
            continue
        if isinstance(result, BaseException):
            raise result
        profiles[counterpart_id] = result
    return build_summaries(items, current_user_id, profiles)


class ConversationAggregator:
    """Live list of a user's conversations, newest activity first.

    Each counterpart's profile is looked up once for the lifetime of the
    aggregator. Lookups run in the background; when one finishes the list
    is rebuilt from the latest snapshot and emitted again.
    """

    def __init__(
        self,
        messages: MessageRepository,
        users: UserRepository,
        current_user_id: str,
        on_change: OnSummaries,
        on_error: Optional[OnError] = None,
    ) -> None:
        self._messages = messages
        self._users = users
        self._user_id = current_user_id
        self._on_change = on_change
        self._on_error = on_error
        self._profiles: Dict[str, Optional[UserProfile]] = {}
        self._lookups: Dict[str, asyncio.Task] = {}
        self._latest: List[Message] = []
        self._emit_lock = asyncio.Lock()
        self._subscription: Optional[Subscription] = None
        self._stopped = False
        self.summaries: List[ConversationSummary] = []

    async def start(self) -> None:
        self._subscription = await self._messages.subscribe_user_messages(
            self._user_id, self._on_messages, self._on_error
        )

    def stop(self) -> None:
        self._stopped = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
        for task in self._lookups.values():
            if not task.done():
                task.cancel()

    async def _on_messages(self, messages: List[Message]) -> None:
        self._latest = messages
        for counterpart_id in counterparts(messages, self._user_id):
            if counterpart_id not in self._lookups:
                self._lookups[counterpart_id] = asyncio.create_task(self._lookup(counterpart_id))
        await self._emit()

    async def _lookup(self, counterpart_id: str) -> None:
        try:
            profile = await self._users.get_profile(counterpart_id)
        except HackmatesError as exc:
            # left unresolved, the conversation stays hidden
            logger.warning("profile lookup for {} failed: {}", counterpart_id, exc)
            return
        except Exception:
            logger.exception("profile lookup for {} crashed", counterpart_id)
            return
        self._profiles[counterpart_id] = profile
        try:
            await self._emit()
        except Exception:
            logger.exception("publishing conversations for {} failed", self._user_id)

    async def _emit(self) -> None:
        async with self._emit_lock:
            if self._stopped:
                return
            self.summaries = build_summaries(self._latest, self._user_id, self._profiles)
            await self._on_change(self.summaries)
