from typing import Dict, List, Optional, Tuple

from fastapi import WebSocket
from loguru import logger


class ConnectionManager:
    """Live WebSocket sessions per user, each tagged with the token that opened it."""

    def __init__(self) -> None:
        self.active_connections: Dict[str, List[Tuple[WebSocket, str]]] = {}

    async def connect(self, user_id: str, websocket: WebSocket, token_id: str) -> None:
        await websocket.accept()
        if user_id not in self.active_connections:
            self.active_connections[user_id] = []
        self.active_connections[user_id].append((websocket, token_id))

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        if user_id in self.active_connections:
            self.active_connections[user_id] = [
                (ws, tid) for ws, tid in self.active_connections[user_id] if ws is not websocket
            ]
            if not self.active_connections[user_id]:
                del self.active_connections[user_id]

    async def close_sessions(self, user_id: str, token_id: Optional[str] = None, code: int = 4403) -> int:
        closed = 0
        for websocket, tid in list(self.active_connections.get(user_id, [])):
            if token_id is not None and tid != token_id:
                continue
            try:
                await websocket.close(code=code)
            except RuntimeError as exc:
                # already closed by the client
                logger.debug("websocket for {} already closed: {}", user_id, exc)
            self.disconnect(user_id, websocket)
            closed += 1
        return closed
