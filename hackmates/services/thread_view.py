import asyncio
from typing import Awaitable, Callable, List, Optional

from loguru import logger

from hackmates.constants import ANONYMOUS_NAME, ONLINE_STATUS
from hackmates.database.document_store import OnError, Subscription
from hackmates.errors import HackmatesError
from hackmates.repositories.message_repository import MessageRepository
from hackmates.repositories.user_repository import UserRepository
from hackmates.schemas.conversation import ThreadHeader
from hackmates.schemas.message import Message
from hackmates.schemas.user import UserProfile


OnUpdate = Callable[[List[Message], Optional[str]], Awaitable[None]]
OnHeader = Callable[[ThreadHeader], Awaitable[None]]


class ThreadView:
    """One live conversation between the signed-in user and a counterpart.

    Every snapshot replaces ``messages`` wholesale and ``on_update`` gets the
    id of the newest message so the client can keep the thread scrolled to
    the bottom. Sending does not touch ``messages``; the new message shows up
    through the subscription.
    """

    def __init__(
        self,
        messages: MessageRepository,
        users: UserRepository,
        current_user_id: Optional[str],
        counterpart_id: str,
        on_update: OnUpdate,
        on_error: Optional[OnError] = None,
        on_header: Optional[OnHeader] = None,
    ) -> None:
        self._messages = messages
        self._users = users
        self._user_id = current_user_id
        self._counterpart_id = counterpart_id
        self._on_update = on_update
        self._on_error = on_error
        self._on_header = on_header
        self._subscription: Optional[Subscription] = None
        self.me: Optional[UserProfile] = None
        self.counterpart: Optional[UserProfile] = None
        self.messages: List[Message] = []
        self.draft = ""

    @property
    def scroll_to(self) -> Optional[str]:
        return self.messages[-1].id if self.messages else None

    @property
    def header(self) -> ThreadHeader:
        return ThreadHeader(
            counterpart_id=self._counterpart_id,
            counterpart_name=self.counterpart.name if self.counterpart else ANONYMOUS_NAME,
            counterpart_photo_url=self.counterpart.photo_url if self.counterpart else None,
            status=ONLINE_STATUS,
            me_name=self.me.name if self.me else ANONYMOUS_NAME,
            me_photo_url=self.me.photo_url if self.me else None,
        )

    async def mount(self) -> None:
        if not self._user_id:
            return
        self.me, self.counterpart = await asyncio.gather(
            self._fetch_profile(self._user_id), self._fetch_profile(self._counterpart_id)
        )
        if self._on_header is not None:
            await self._on_header(self.header)
        self._subscription = await self._messages.subscribe_conversation_messages(
            self._user_id, self._counterpart_id, self._on_messages, self._on_error
        )

    def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()

    async def send(self, text: Optional[str] = None) -> Optional[Message]:
        text = self.draft if text is None else text
        if not text.strip() or not self._user_id or self.counterpart is None:
            return None
        message = await self._messages.send(self._user_id, self._counterpart_id, text)
        self.draft = ""
        return message

    async def _fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            return await self._users.get_profile(user_id)
        except HackmatesError as exc:
            logger.warning("profile lookup for {} failed: {}", user_id, exc)
            return None

    async def _on_messages(self, messages: List[Message]) -> None:
        self.messages = messages
        await self._on_update(self.messages, self.scroll_to)
