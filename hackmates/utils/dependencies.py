from typing import Optional

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import OAuth2PasswordBearer

from hackmates.database.blob_store import BlobStore
from hackmates.database.document_store import DocumentStore
from hackmates.errors import HackmatesError
from hackmates.repositories.message_repository import MessageRepository
from hackmates.repositories.user_repository import UserRepository
from hackmates.schemas.user import AuthUser
from hackmates.services.auth_service import IdentityProvider, Session


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blobs


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.auth.identity


def get_message_repository(store: DocumentStore = Depends(get_document_store)) -> MessageRepository:
    return MessageRepository(store)


def get_user_repository(store: DocumentStore = Depends(get_document_store)) -> UserRepository:
    return UserRepository(store)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    identity: IdentityProvider = Depends(get_identity),
) -> AuthUser:
    user = await identity.current_user(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def authenticate_websocket(websocket: WebSocket) -> Optional[Session]:
    """Resolve the ?token= query parameter, closing the socket with 4401 if it is not valid."""
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=4401)
        return None
    session = await websocket.app.state.auth.identity.resolve(token)
    if session is None:
        await websocket.close(code=4401)
        return None
    return session


def error_frame(exc: HackmatesError) -> dict:
    return {"type": "error", "code": exc.code, "detail": exc.detail}
