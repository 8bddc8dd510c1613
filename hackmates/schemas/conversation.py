from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from hackmates.schemas.message import Message


class ConversationSummary(BaseModel):

    counterpart_id: str
    counterpart_name: str
    counterpart_photo_url: Optional[str] = None
    last_message_content: str
    last_message_timestamp: datetime
    # never computed
    unread_count: int = 0


class ThreadHeader(BaseModel):

    counterpart_id: str
    counterpart_name: str
    counterpart_photo_url: Optional[str] = None
    status: str
    me_name: str
    me_photo_url: Optional[str] = None


class ThreadSnapshot(BaseModel):

    messages: List[Message]
    scroll_to: Optional[str] = None
