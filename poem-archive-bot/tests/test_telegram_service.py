#!/usr/bin/env python3
"""
Tests for the Telegram Bot API adapter.
"""
import json

import httpx
import pytest

from services.telegram_service import DownloadError, TelegramApiError, TelegramService

BASE = "https://telegram.test"


def _service(handler) -> TelegramService:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return TelegramService("123:ABC", base_url=BASE, client=client)


def _ok(result):
    return httpx.Response(200, json={"ok": True, "result": result})


def test_get_updates_parses_photo_messages():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return _ok([{
            "update_id": 10,
            "message": {
                "message_id": 5,
                "chat": {"id": 42, "type": "private"},
                "caption": "libro 2",
                "media_group_id": "g1",
                "photo": [
                    {"file_id": "small", "width": 90, "height": 60},
                    {"file_id": "large", "width": 1280, "height": 960},
                ],
            },
        }])

    updates = _service(handler).get_updates(offset=7, timeout=1)

    assert seen["path"] == "/bot123:ABC/getUpdates"
    assert seen["body"]["offset"] == 7
    assert updates[0].update_id == 10
    assert updates[0].message.photo[-1].file_id == "large"
    assert updates[0].message.media_group_id == "g1"


def test_conflict_is_flagged():
    def handler(request):
        return httpx.Response(409, json={
            "ok": False,
            "error_code": 409,
            "description": "Conflict: terminated by other getUpdates request",
        })

    with pytest.raises(TelegramApiError) as excinfo:
        _service(handler).get_updates(timeout=1)

    assert excinfo.value.is_conflict is True
    assert excinfo.value.error_code == 409


def test_other_errors_are_not_conflicts():
    def handler(request):
        return httpx.Response(400, json={"ok": False, "error_code": 400, "description": "Bad Request: message is not modified"})

    with pytest.raises(TelegramApiError) as excinfo:
        _service(handler).send_message(1, "hi")

    assert excinfo.value.is_conflict is False


def test_send_and_edit_message_round_trip_ids():
    calls = []

    def handler(request):
        calls.append((request.url.path, json.loads(request.content)))
        if request.url.path.endswith("/sendMessage"):
            return _ok({"message_id": 77, "chat": {"id": 42}, "text": "x"})
        return _ok(True)

    service = _service(handler)
    status = service.send_message(42, "📚 Processing...")
    service.edit_message_text(status, "📚 Processing photo 2/3...")

    assert status.chat_id == 42 and status.message_id == 77
    assert calls[1] == ("/bot123:ABC/editMessageText", {"chat_id": 42, "message_id": 77, "text": "📚 Processing photo 2/3..."})


def test_download_photo_fetches_file_path():
    def handler(request):
        if request.url.path.endswith("/getFile"):
            return _ok({"file_id": "large", "file_path": "photos/file_1.jpg"})
        assert request.url.path == "/file/bot123:ABC/photos/file_1.jpg"
        return httpx.Response(200, content=b"\xff\xd8jpeg")

    assert _service(handler).download_photo("large") == b"\xff\xd8jpeg"


def test_download_failure_raises_download_error():
    def handler(request):
        if request.url.path.endswith("/getFile"):
            return _ok({"file_id": "large", "file_path": "photos/file_1.jpg"})
        return httpx.Response(404)

    with pytest.raises(DownloadError) as excinfo:
        _service(handler).download_photo("large")

    assert excinfo.value.status_code == 404


def test_non_json_response_raises_api_error():
    def handler(request):
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    with pytest.raises(TelegramApiError) as excinfo:
        _service(handler).send_message(1, "hi")

    assert excinfo.value.error_code == 502
