import http.client
import io
import json
import urllib.error
import urllib.parse
import urllib.request

import pytest

from tgpoll import (
    GetMeResponse,
    GetUpdatesResponse,
    TelegramBotApi,
    TelegramDecodeError,
    TelegramRemoteError,
    TelegramTransportError,
)


class _FakeResponse:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


def _install_urlopen(monkeypatch, handler) -> list[tuple[str, float]]:
    seen: list[tuple[str, float]] = []

    def fake_urlopen(request, timeout):
        seen.append((request.full_url, timeout))
        return handler(request)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    return seen


def _query(url: str) -> dict[str, str]:
    return dict(urllib.parse.parse_qsl(urllib.parse.urlparse(url).query))


@pytest.mark.anyio
async def test_telegram_bot_api_async_wrappers_call_sync_impl(monkeypatch) -> None:
    api = TelegramBotApi(token="test-token")

    got_me_called = False
    got_updates: tuple | None = None

    def fake_get_me_sync(self):
        nonlocal got_me_called
        got_me_called = True
        return GetMeResponse.model_validate(
            {"ok": True, "result": {"id": 123, "username": "MyBot"}}
        )

    def fake_get_updates_sync(
        self, *, offset, timeout_seconds, limit=None, allowed_updates=None
    ):
        nonlocal got_updates
        got_updates = (offset, timeout_seconds, limit, allowed_updates)
        return GetUpdatesResponse.model_validate(
            {"ok": True, "result": [{"update_id": 1, "message_reaction": {}}]}
        )

    monkeypatch.setattr(TelegramBotApi, "_get_me_sync", fake_get_me_sync)
    monkeypatch.setattr(TelegramBotApi, "_get_updates_sync", fake_get_updates_sync)

    me = await api.get_me()
    assert got_me_called is True
    assert me.result is not None and me.result.id == 123

    resp = await api.get_updates(offset=5, timeout_seconds=12, limit=3)
    assert got_updates == (5, 12, 3, None)
    assert resp.updates[0].update_id == 1


def test_get_updates_omits_offset_when_absent(monkeypatch) -> None:
    seen = _install_urlopen(
        monkeypatch, lambda request: _FakeResponse(b'{"ok":true,"result":[]}')
    )
    api = TelegramBotApi(token="T")

    resp = api._get_updates_sync(offset=None, timeout_seconds=60)

    assert resp.updates == []
    url, timeout = seen[0]
    assert url.startswith("https://api.telegram.org/botT/getUpdates?")
    assert _query(url) == {"timeout": "60"}
    assert timeout == 75


def test_get_updates_sends_offset_limit_and_allowed_updates(monkeypatch) -> None:
    seen = _install_urlopen(
        monkeypatch,
        lambda request: _FakeResponse(
            b'{"ok":true,"result":[{"update_id":8,"message":'
            b'{"message_id":1,"chat":{"id":2,"type":"private"},"date":3}}]}'
        ),
    )
    api = TelegramBotApi(token="T", base_url="http://localhost:8081/")

    resp = api._get_updates_sync(
        offset=8, timeout_seconds=1, limit=20, allowed_updates=["message"]
    )

    assert resp.next_update_id() == 9
    url, timeout = seen[0]
    assert url.startswith("http://localhost:8081/botT/getUpdates?")
    assert _query(url) == {
        "timeout": "1",
        "offset": "8",
        "limit": "20",
        "allowed_updates": '["message"]',
    }
    assert timeout == 16


def test_http_error_with_api_envelope_is_returned_as_remote_failure(
    monkeypatch,
) -> None:
    body = json.dumps(
        {"ok": False, "error_code": 409, "description": "Conflict: terminated"}
    ).encode()

    def handler(request):
        raise urllib.error.HTTPError(
            request.full_url, 409, "Conflict", {}, io.BytesIO(body)
        )

    _install_urlopen(monkeypatch, handler)

    resp = TelegramBotApi(token="T")._get_updates_sync(offset=3, timeout_seconds=1)

    assert resp.ok is False
    assert resp.error_code == 409
    assert resp.updates == []
    assert resp.next_update_id() is None


def test_http_error_without_envelope_is_transport_error(monkeypatch) -> None:
    def handler(request):
        raise urllib.error.HTTPError(
            request.full_url, 502, "Bad Gateway", {}, io.BytesIO(b"<html>")
        )

    _install_urlopen(monkeypatch, handler)

    with pytest.raises(TelegramTransportError, match="HTTP 502") as exc_info:
        TelegramBotApi(token="T")._get_updates_sync(offset=None, timeout_seconds=1)
    assert exc_info.value.method == "getUpdates"


def test_network_error_is_transport_error(monkeypatch) -> None:
    def handler(request):
        raise urllib.error.URLError("name resolution failed")

    _install_urlopen(monkeypatch, handler)

    with pytest.raises(TelegramTransportError, match="network error"):
        TelegramBotApi(token="T")._get_updates_sync(offset=None, timeout_seconds=1)


def test_timeout_is_transport_error(monkeypatch) -> None:
    def handler(request):
        raise TimeoutError("timed out")

    _install_urlopen(monkeypatch, handler)

    with pytest.raises(TelegramTransportError):
        TelegramBotApi(token="T")._get_updates_sync(offset=None, timeout_seconds=1)


def test_truncated_body_is_transport_error(monkeypatch) -> None:
    class _TruncatedResponse(_FakeResponse):
        def read(self) -> bytes:
            raise http.client.IncompleteRead(b'{"ok":tr', 100)

    _install_urlopen(monkeypatch, lambda request: _TruncatedResponse(b""))

    with pytest.raises(TelegramTransportError, match="network error") as exc_info:
        TelegramBotApi(token="T")._get_updates_sync(offset=None, timeout_seconds=1)
    assert isinstance(exc_info.value.__cause__, http.client.IncompleteRead)


def test_garbled_status_line_is_transport_error(monkeypatch) -> None:
    def handler(request):
        raise http.client.BadStatusLine("HTTP/1.1 ???")

    _install_urlopen(monkeypatch, handler)

    with pytest.raises(TelegramTransportError):
        TelegramBotApi(token="T")._get_updates_sync(offset=None, timeout_seconds=1)


def test_http_error_response_is_closed(monkeypatch) -> None:
    fp = io.BytesIO(b"<html>")

    def handler(request):
        raise urllib.error.HTTPError(request.full_url, 502, "Bad Gateway", {}, fp)

    _install_urlopen(monkeypatch, handler)

    with pytest.raises(TelegramTransportError):
        TelegramBotApi(token="T")._get_updates_sync(offset=None, timeout_seconds=1)
    assert fp.closed


@pytest.mark.parametrize(
    "body",
    [b"not-json", b"[]", b'{"ok":true,"result":[{"update_id":"x"}]}'],
)
def test_undecodable_body_is_decode_error(monkeypatch, body: bytes) -> None:
    _install_urlopen(monkeypatch, lambda request: _FakeResponse(body))

    with pytest.raises(TelegramDecodeError):
        TelegramBotApi(token="T")._get_updates_sync(offset=None, timeout_seconds=1)


def test_get_me_returns_identity(monkeypatch) -> None:
    seen = _install_urlopen(
        monkeypatch,
        lambda request: _FakeResponse(
            b'{"ok":true,"result":{"id":42,"is_bot":true,"first_name":"P",'
            b'"username":"p_bot","can_join_groups":true}}'
        ),
    )

    resp = TelegramBotApi(token="T")._get_me_sync()

    assert resp.result is not None
    assert resp.result.username == "p_bot"
    assert seen == [("https://api.telegram.org/botT/getMe", 10)]


def test_get_me_remote_failure_raises(monkeypatch) -> None:
    body = b'{"ok":false,"error_code":401,"description":"Unauthorized"}'

    def handler(request):
        raise urllib.error.HTTPError(
            request.full_url, 401, "Unauthorized", {}, io.BytesIO(body)
        )

    _install_urlopen(monkeypatch, handler)

    with pytest.raises(TelegramRemoteError, match="Unauthorized") as exc_info:
        TelegramBotApi(token="T")._get_me_sync()
    assert exc_info.value.error_code == 401
    assert exc_info.value.method == "getMe"


def test_get_me_missing_result_is_decode_error(monkeypatch) -> None:
    _install_urlopen(monkeypatch, lambda request: _FakeResponse(b'{"ok":true}'))

    with pytest.raises(TelegramDecodeError, match="missing result"):
        TelegramBotApi(token="T")._get_me_sync()


def test_repr_hides_token() -> None:
    assert "secret-token" not in repr(TelegramBotApi(token="secret-token"))
