import asyncio
import contextlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Tuple

import jwt
from loguru import logger
from pydantic import BaseModel

from hackmates.config import Settings
from hackmates.constants import REVOKED_TOKENS_COLLECTION
from hackmates.database.document_store import DocumentStore, translate_errors
from hackmates.errors import AuthenticationError, ValidationError
from hackmates.models.revoked_token import RevokedTokenDocument
from hackmates.repositories.user_repository import UserRepository
from hackmates.schemas.user import AuthUser, Token, UserPublic
from hackmates.utils.security import create_access_token, decode_access_token, hash_password, verify_password
from hackmates.utils.websocket_manager import ConnectionManager


AUTH_CHANNEL = "auth"


class AuthEvent(BaseModel):

    user_id: str
    token_id: str
    signed_in: bool


@dataclass(frozen=True)
class Session:

    user: AuthUser
    token_id: str


class AuthListener:
    """Owned handle for an auth change subscription."""

    def __init__(self, subscriber) -> None:
        self._subscriber = subscriber
        self._task: Optional[asyncio.Task] = asyncio.create_task(subscriber.run())

    async def close(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        await self._subscriber.cancel()


class IdentityProvider:

    def __init__(self, users: UserRepository, store: DocumentStore, settings: Settings) -> None:
        self._users = users
        self._store = store
        self._settings = settings

    async def register(self, email: str, password: str, full_name: Optional[str]) -> UserPublic:
        existing = await self._users.get_user_by_email(email)
        if existing:
            raise ValidationError("Email already registered")
        new_id = await self._users.create_user(email=email, hashed_password=hash_password(password), full_name=full_name)
        logger.info("registered user {}", new_id)
        return UserPublic(id=new_id, email=email, full_name=full_name)

    async def sign_in(self, email: str, password: str) -> Tuple[Token, AuthUser]:
        user = await self._users.get_user_by_email(email)
        if not user or not verify_password(password, user.get("hashed_password", "")):
            raise AuthenticationError("Incorrect email or password")
        token, payload = create_access_token(
            user["_id"], self._settings.jwt_secret, self._settings.jwt_algorithm, self._settings.access_token_minutes
        )
        await self._publish(AuthEvent(user_id=user["_id"], token_id=payload["jti"], signed_in=True))
        logger.info("user {} signed in", user["_id"])
        return Token(access_token=token), _auth_user(user)

    async def sign_out(self, token: str) -> None:
        payload = self._decode(token)
        if payload is None:
            raise AuthenticationError("Invalid token")
        if await self._is_revoked(payload["jti"]):
            return
        revoked: RevokedTokenDocument = {
            "jti": payload["jti"],
            "user_id": payload["sub"],
            "expires_at": datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        }
        await self._store.create(REVOKED_TOKENS_COLLECTION, revoked)
        await self._publish(AuthEvent(user_id=payload["sub"], token_id=payload["jti"], signed_in=False))
        logger.info("user {} signed out", payload["sub"])

    async def resolve(self, token: str) -> Optional[Session]:
        payload = self._decode(token)
        if payload is None or await self._is_revoked(payload["jti"]):
            return None
        user = await self._users.get_user_by_id(payload["sub"])
        if user is None:
            return None
        return Session(user=_auth_user(user), token_id=payload["jti"])

    async def current_user(self, token: str) -> Optional[AuthUser]:
        session = await self.resolve(token)
        return session.user if session else None

    async def on_auth_change(self, callback: Callable[[AuthEvent], Awaitable[None]]) -> AuthListener:
        async def handle(payload: str) -> None:
            try:
                await callback(AuthEvent.model_validate_json(payload))
            except Exception:
                # one bad event must not stop the listener
                logger.exception("auth change handler failed for {}", payload)

        subscriber = await self._store.bus.subscribe(AUTH_CHANNEL, handle)
        return AuthListener(subscriber)

    async def ensure_indexes(self) -> None:
        collection = self._store.db[REVOKED_TOKENS_COLLECTION]
        await collection.create_index("jti", unique=True)
        await collection.create_index("expires_at", expireAfterSeconds=0)

    def _decode(self, token: str) -> Optional[dict]:
        try:
            return decode_access_token(token, self._settings.jwt_secret, self._settings.jwt_algorithm)
        except jwt.PyJWTError:
            return None

    async def _is_revoked(self, token_id: str) -> bool:
        with translate_errors():
            doc = await self._store.db[REVOKED_TOKENS_COLLECTION].find_one({"jti": token_id})
        return doc is not None

    async def _publish(self, event: AuthEvent) -> None:
        await self._store.bus.publish(AUTH_CHANNEL, event.model_dump_json())


def _auth_user(doc: dict) -> AuthUser:
    return AuthUser(
        id=str(doc["_id"]),
        email=doc.get("email", ""),
        display_name=doc.get("name") or doc.get("display_name"),
        photo_url=doc.get("photo_url") or doc.get("provider_photo_url"),
        onboarding_completed=bool(doc.get("onboarding_completed", False)),
    )


class AuthContext:
    """Process-wide auth state, owned by the application lifespan.

    ``init`` subscribes to the identity provider's sign-in/sign-out events,
    ``close`` drops the subscription. A sign-out closes every live session
    opened with the revoked token.
    """

    def __init__(self, identity: IdentityProvider, connections: ConnectionManager) -> None:
        self.identity = identity
        self.connections = connections
        self._listener: Optional[AuthListener] = None

    async def init(self) -> None:
        if self._listener is None:
            self._listener = await self.identity.on_auth_change(self._on_auth_change)

    async def close(self) -> None:
        if self._listener is not None:
            await self._listener.close()
            self._listener = None

    async def _on_auth_change(self, event: AuthEvent) -> None:
        if event.signed_in:
            return
        closed = await self.connections.close_sessions(event.user_id, event.token_id)
        if closed:
            logger.info("closed {} live session(s) for signed out user {}", closed, event.user_id)
