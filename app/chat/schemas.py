"""Pydantic schemas for the session, message and partner endpoints."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class SessionCreate(CamelModel):
    """Schema for creating a session."""
    title: str = Field(..., min_length=1, max_length=200)
    type: Literal["couples", "private"]
    partner_id: Optional[str] = None


class SessionUpdate(CamelModel):
    """Schema for renaming a session or attaching a partner."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    partner_id: Optional[str] = None


class SessionResponse(CamelModel):
    id: int
    creator_id: str
    partner_id: Optional[str] = None
    title: str
    type: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    is_active: bool


class MessageCreate(CamelModel):
    content: str = Field(..., min_length=1)


class MessageResponse(CamelModel):
    id: int
    session_id: int
    sender_id: Optional[str] = None
    is_ai: bool
    content: str
    created_at: Optional[datetime] = None


class RoutedMessageResponse(CamelModel):
    user_message_id: int
    ai_message_id: int


class StreamStatusResponse(CamelModel):
    message_id: int
    content: str
    is_complete: bool


class PartnerCreate(CamelModel):
    partner_id: str = Field(..., min_length=1)


class PartnerResponse(CamelModel):
    id: int
    user_id: str
    partner_id: str
    is_active: bool
    created_at: Optional[datetime] = None


class UserResponse(CamelModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
