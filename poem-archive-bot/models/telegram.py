#!/usr/bin/env python3
"""
Telegram Bot API payload models.

Only the fields the bot reads are declared; everything else is ignored.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class _TelegramModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Chat(_TelegramModel):
    id: int
    type: Optional[str] = None


class PhotoSize(_TelegramModel):
    """One resolution variant of a photo."""
    file_id: str
    file_unique_id: Optional[str] = None
    width: int
    height: int
    file_size: Optional[int] = None


class Message(_TelegramModel):
    message_id: int
    chat: Chat
    date: Optional[int] = None
    text: Optional[str] = None
    caption: Optional[str] = None
    media_group_id: Optional[str] = None
    photo: Optional[List[PhotoSize]] = None


class Update(_TelegramModel):
    update_id: int
    message: Optional[Message] = None


class TelegramFile(_TelegramModel):
    file_id: str
    file_size: Optional[int] = None
    file_path: Optional[str] = None
