from typing import List

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from loguru import logger

from hackmates.errors import HackmatesError
from hackmates.repositories.message_repository import MessageRepository
from hackmates.repositories.user_repository import UserRepository
from hackmates.schemas.conversation import ConversationSummary
from hackmates.schemas.user import AuthUser
from hackmates.services.conversation_aggregator import ConversationAggregator, list_conversations
from hackmates.utils.dependencies import (
    authenticate_websocket,
    error_frame,
    get_current_user,
    get_message_repository,
    get_user_repository,
)


router = APIRouter(tags=["chat"])


@router.get("/conversations", response_model=List[ConversationSummary])
async def get_conversations(
    current_user: AuthUser = Depends(get_current_user),
    messages: MessageRepository = Depends(get_message_repository),
    users: UserRepository = Depends(get_user_repository),
):
    return await list_conversations(messages, users, current_user.id)


@router.websocket("/ws/conversations")
async def conversations_socket(websocket: WebSocket):
    session = await authenticate_websocket(websocket)
    if session is None:
        return
    state = websocket.app.state
    user_id = session.user.id
    await state.auth.connections.connect(user_id, websocket, session.token_id)

    async def push_summaries(summaries: List[ConversationSummary]) -> None:
        await websocket.send_json({
            "type": "conversations",
            "items": [s.model_dump(mode="json") for s in summaries],
        })

    async def push_error(exc: HackmatesError) -> None:
        await websocket.send_json(error_frame(exc))

    aggregator = ConversationAggregator(
        MessageRepository(state.store), UserRepository(state.store), user_id, push_summaries, push_error
    )
    try:
        await aggregator.start()
        # the client has nothing to say, reading only notices the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("conversations socket for {} closed", user_id)
    finally:
        aggregator.stop()
        state.auth.connections.disconnect(user_id, websocket)
