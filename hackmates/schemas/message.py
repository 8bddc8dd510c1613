from datetime import datetime, timezone
from typing import Any, List, Mapping

from pydantic import BaseModel, Field, field_validator, model_validator


class Message(BaseModel):

    id: str = Field(min_length=1)
    sender_id: str = Field(min_length=1)
    receiver_id: str = Field(min_length=1)
    content: str
    timestamp: datetime
    participants: List[str] = Field(default_factory=list)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        # documents written without tz_aware come back naive but are UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _fill_participants(self) -> "Message":
        if not self.participants:
            self.participants = [self.sender_id, self.receiver_id]
        return self

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Message":
        return cls(
            id=str(doc.get("_id") or ""),
            sender_id=doc.get("sender_id") or "",
            receiver_id=doc.get("receiver_id") or "",
            content=doc.get("content") or "",
            timestamp=doc.get("timestamp"),
            participants=doc.get("participants") or [],
        )

    def counterpart_of(self, user_id: str) -> str:
        return self.receiver_id if self.sender_id == user_id else self.sender_id


class SendMessageRequest(BaseModel):

    content: str
