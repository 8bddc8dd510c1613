from datetime import datetime
from typing import List, TypedDict


class MessageDocument(TypedDict, total=False):
    _id: str
    sender_id: str
    receiver_id: str
    content: str
    timestamp: datetime
    # both ids, for array-contains membership queries
    participants: List[str]
