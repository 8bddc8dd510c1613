import json
from typing import List, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from loguru import logger

from hackmates.errors import HackmatesError, NotFoundError, ValidationError
from hackmates.repositories.message_repository import MessageRepository
from hackmates.repositories.user_repository import UserRepository
from hackmates.schemas.conversation import ThreadHeader, ThreadSnapshot
from hackmates.schemas.message import Message, SendMessageRequest
from hackmates.schemas.user import AuthUser
from hackmates.services.thread_view import ThreadView
from hackmates.utils.dependencies import (
    authenticate_websocket,
    error_frame,
    get_current_user,
    get_message_repository,
    get_user_repository,
)


router = APIRouter(tags=["chat"])


@router.get("/messages/{counterpart_id}", response_model=ThreadSnapshot)
async def get_thread(
    counterpart_id: str,
    current_user: AuthUser = Depends(get_current_user),
    messages: MessageRepository = Depends(get_message_repository),
):
    items = await messages.list_conversation_messages(current_user.id, counterpart_id)
    return ThreadSnapshot(messages=items, scroll_to=items[-1].id if items else None)


@router.post("/messages/{counterpart_id}", response_model=Message, status_code=status.HTTP_201_CREATED)
async def send_message(
    counterpart_id: str,
    body: SendMessageRequest,
    current_user: AuthUser = Depends(get_current_user),
    messages: MessageRepository = Depends(get_message_repository),
    users: UserRepository = Depends(get_user_repository),
):
    if counterpart_id == current_user.id:
        raise ValidationError("Cannot message yourself")
    if await users.get_profile(counterpart_id) is None:
        raise NotFoundError("User not found")
    return await messages.send(current_user.id, counterpart_id, body.content)


@router.websocket("/ws/chat/{counterpart_id}")
async def chat_socket(websocket: WebSocket, counterpart_id: str):
    session = await authenticate_websocket(websocket)
    if session is None:
        return
    state = websocket.app.state
    user_id = session.user.id
    await state.auth.connections.connect(user_id, websocket, session.token_id)

    async def push_header(header: ThreadHeader) -> None:
        await websocket.send_json({"type": "header", **header.model_dump(mode="json")})

    async def push_snapshot(items: List[Message], scroll_to: Optional[str]) -> None:
        snapshot = ThreadSnapshot(messages=items, scroll_to=scroll_to)
        await websocket.send_json({"type": "snapshot", **snapshot.model_dump(mode="json")})

    async def push_error(exc: HackmatesError) -> None:
        await websocket.send_json(error_frame(exc))

    thread = ThreadView(
        MessageRepository(state.store),
        UserRepository(state.store),
        user_id,
        counterpart_id,
        on_update=push_snapshot,
        on_error=push_error,
        on_header=push_header,
    )
    try:
        await thread.mount()
        while True:
            data = await websocket.receive_text()
            # Expect {"type": "send", "content": str}
            try:
                msg = json.loads(data)
            except ValueError:
                await push_error(ValidationError("Invalid message payload"))
                continue
            if not isinstance(msg, dict) or msg.get("type") != "send":
                await push_error(ValidationError("Unknown frame type"))
                continue
            try:
                await thread.send(str(msg.get("content") or ""))
            except HackmatesError as exc:
                await push_error(exc)
    except WebSocketDisconnect:
        logger.debug("chat socket for {} closed", user_id)
    finally:
        thread.unmount()
        state.auth.connections.disconnect(user_id, websocket)
