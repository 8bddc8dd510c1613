from datetime import datetime
from typing import TypedDict


class RevokedTokenDocument(TypedDict, total=False):
    _id: str
    jti: str
    user_id: str
    # TTL index removes the entry once the token would have expired anyway
    expires_at: datetime
