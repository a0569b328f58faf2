"""Pydantic schemas for chats and messages."""

from __future__ import annotations

from typing import Any, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field

from watchme.domain.identity.schemas import MediaType, PublicProfile
from watchme.domain.chat.models import MESSAGE_MAX_LENGTH


class MovieRef(BaseModel):
	id: int = Field(..., ge=1)
	title: str = Field(default="", max_length=300)
	poster_path: Optional[str] = Field(default=None, max_length=300)
	media_type: MediaType


class SendMessageRequest(BaseModel):
	text: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)


class MessageOut(BaseModel):
	id: str
	text: str
	sender_id: str
	created_at: Optional[str] = None
	type: Literal["text", "recommendation"] = "text"
	movie: Optional[MovieRef] = None

	@classmethod
	def from_doc(cls, message_id: str, data: Mapping[str, Any]) -> "MessageOut":
		movie = data.get("movie")
		return cls(
			id=message_id,
			text=str(data.get("text") or ""),
			sender_id=str(data.get("sender_id") or ""),
			created_at=data.get("created_at"),
			type=data.get("type") or "text",
			movie=MovieRef.model_validate(movie) if movie else None,
		)


class LastMessage(BaseModel):
	text: str
	sender_id: str
	created_at: Optional[str] = None
	read_by: List[str] = Field(default_factory=list)


class ChatSummary(BaseModel):
	id: str
	users: List[str]
	peer: Optional[PublicProfile] = None
	last_message: Optional[LastMessage] = None
	unread: bool = False
	created_at: Optional[str] = None


class ChatMessagePayload(BaseModel):
	chat_id: str
	message: MessageOut


class ChatReadPayload(BaseModel):
	chat_id: str
	user_id: str
