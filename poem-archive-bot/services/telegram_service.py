#!/usr/bin/env python3
"""
Telegram Bot API service for message delivery and file downloads.
"""
from typing import List, Optional

import httpx

from config.settings import HTTP_TIMEOUT_SECONDS, TELEGRAM_API_BASE, TELEGRAM_POLL_LIMIT, TELEGRAM_POLL_TIMEOUT
from models.data_models import StatusMessage
from models.telegram import Message, TelegramFile, Update

CONFLICT_STATUS = 409


class TelegramApiError(Exception):
    """The Bot API answered ok=false."""

    def __init__(self, method: str, error_code: Optional[int], description: str):
        self.method = method
        self.error_code = error_code
        self.description = description
        super().__init__(f"Telegram {method} failed ({error_code}): {description}")

    @property
    def is_conflict(self) -> bool:
        """Another process is polling getUpdates with the same token."""
        return self.error_code == CONFLICT_STATUS


class DownloadError(Exception):
    """Fetching a photo returned a non-success response."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        super().__init__(f"Failed to download photo: {status_code} {reason}".strip())


class TelegramService:
    """Service for Telegram Bot API operations."""

    def __init__(self, token: str, base_url: str = TELEGRAM_API_BASE, client: Optional[httpx.Client] = None):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT_SECONDS)

    def _call(self, method: str, payload: Optional[dict] = None, timeout: Optional[float] = None) -> object:
        url = f"{self.base_url}/bot{self.token}/{method}"
        kwargs = {"json": payload or {}}
        if timeout is not None:
            kwargs["timeout"] = timeout
        response = self.client.post(url, **kwargs)
        try:
            body = response.json()
        except ValueError:
            raise TelegramApiError(method, response.status_code, response.text[:200])
        if not body.get("ok"):
            raise TelegramApiError(method, body.get("error_code", response.status_code), body.get("description", ""))
        return body.get("result")

    def get_updates(self, offset: int = 0, timeout: int = TELEGRAM_POLL_TIMEOUT, limit: int = TELEGRAM_POLL_LIMIT) -> List[Update]:
        """Long-poll for updates newer than offset."""
        result = self._call(
            "getUpdates",
            {"offset": offset, "timeout": timeout, "limit": limit, "allowed_updates": ["message"]},
            timeout=timeout + 10,
        )
        return [Update.model_validate(u) for u in result or []]

    def send_message(self, chat_id: int, text: str) -> StatusMessage:
        result = self._call("sendMessage", {"chat_id": chat_id, "text": text})
        message = Message.model_validate(result)
        return StatusMessage(chat_id=message.chat.id, message_id=message.message_id)

    def edit_message_text(self, status: StatusMessage, text: str):
        self._call("editMessageText", {"chat_id": status.chat_id, "message_id": status.message_id, "text": text})

    def get_file(self, file_id: str) -> TelegramFile:
        return TelegramFile.model_validate(self._call("getFile", {"file_id": file_id}))

    def download_file(self, file_path: str) -> bytes:
        """Download file bytes. Non-2xx responses raise DownloadError."""
        url = f"{self.base_url}/file/bot{self.token}/{file_path}"
        response = self.client.get(url)
        if not response.is_success:
            raise DownloadError(response.status_code, response.reason_phrase)
        return response.content

    def download_photo(self, file_id: str) -> bytes:
        info = self.get_file(file_id)
        if not info.file_path:
            raise DownloadError(404, "file_path missing from getFile response")
        return self.download_file(info.file_path)

    def close(self):
        self.client.close()


def get_telegram_service(token: str) -> TelegramService:
    """Get Telegram service instance."""
    return TelegramService(token)
