"""Telegram Bot API client used by the long-poll loop."""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Final, TypeVar

import anyio.to_thread as to_thread
from pydantic import BaseModel, ValidationError

from tgpoll.entities import GetMeResponse, GetUpdatesResponse
from tgpoll.errors import TelegramDecodeError, TelegramRemoteError, TelegramTransportError

TELEGRAM_API_BASE: Final[str] = "https://api.telegram.org"
_GET_ME_TIMEOUT_SECONDS: Final[float] = 10

_ResponseT = TypeVar("_ResponseT", bound=BaseModel)


def _is_api_envelope(raw: bytes) -> bool:
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return False
    return isinstance(payload, dict) and isinstance(payload.get("ok"), bool)


def _decode(method: str, raw: bytes, model: type[_ResponseT]) -> _ResponseT:
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise TelegramDecodeError(
            f"Telegram {method} failed: invalid response ({e.error_count()} errors)",
            method=method,
        ) from e


@dataclass(slots=True)
class TelegramBotApi:
    """Minimal Telegram Bot API client for `getMe` and `getUpdates` polling."""

    token: str = field(repr=False)
    base_url: str = TELEGRAM_API_BASE

    def _method_url(self, method: str) -> str:
        # Never log/print this URL; it embeds the bot token.
        return f"{self.base_url.rstrip('/')}/bot{self.token}/{method}"

    def _request_sync(
        self,
        method: str,
        *,
        params: Mapping[str, Any] | None = None,
        timeout: float,
    ) -> bytes:
        url = self._method_url(method)
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        request = urllib.request.Request(url, method="GET")

        try:
            with urllib.request.urlopen(request, timeout=timeout) as resp:
                return resp.read()
        except urllib.error.HTTPError as e:
            # Bot API errors (401, 409, 429, ...) still carry a JSON envelope
            # with `ok=false`; hand it to the decoder like any other answer.
            try:
                body = e.read()
            finally:
                e.close()
            if _is_api_envelope(body):
                return body
            raise TelegramTransportError(
                f"Telegram {method} failed: HTTP {e.code}", method=method
            ) from e
        except (
            urllib.error.URLError,
            http.client.HTTPException,
            TimeoutError,
            OSError,
        ) as e:
            # HTTPException covers truncated bodies (IncompleteRead) and
            # garbled status lines, which are not OSErrors.
            raise TelegramTransportError(
                f"Telegram {method} failed: network error", method=method
            ) from e

    def _get_me_sync(self) -> GetMeResponse:
        raw = self._request_sync("getMe", timeout=_GET_ME_TIMEOUT_SECONDS)
        response = _decode("getMe", raw, GetMeResponse)
        if not response.ok:
            raise TelegramRemoteError(
                method="getMe",
                error_code=response.error_code,
                description=response.description,
            )
        if response.result is None:
            raise TelegramDecodeError(
                "Telegram getMe failed: missing result", method="getMe"
            )
        return response

    async def get_me(self) -> GetMeResponse:
        """Fetch bot identity via `getMe` (async wrapper).

        Raises `TelegramRemoteError` when Telegram answers `ok=false`.
        """

        return await to_thread.run_sync(self._get_me_sync)

    def _get_updates_sync(
        self,
        *,
        offset: int | None,
        timeout_seconds: int,
        limit: int | None = None,
        allowed_updates: Sequence[str] | None = None,
    ) -> GetUpdatesResponse:
        params: dict[str, Any] = {"timeout": timeout_seconds}
        if offset is not None:
            params["offset"] = offset
        if limit is not None:
            params["limit"] = limit
        if allowed_updates is not None:
            params["allowed_updates"] = json.dumps(list(allowed_updates))

        # Client timeout should exceed server long-poll timeout.
        client_timeout = max(5, timeout_seconds + 15)
        raw = self._request_sync("getUpdates", params=params, timeout=client_timeout)
        return _decode("getUpdates", raw, GetUpdatesResponse)

    async def get_updates(
        self,
        *,
        offset: int | None,
        timeout_seconds: int,
        limit: int | None = None,
        allowed_updates: Sequence[str] | None = None,
    ) -> GetUpdatesResponse:
        """Long-poll `getUpdates` (async wrapper).

        `offset=None` omits the parameter entirely. An `ok=false` envelope is
        returned as-is rather than raised; its `updates` is empty.

        Note: stdlib `urllib` is blocking; the request runs in a worker thread.
        """

        return await to_thread.run_sync(
            partial(
                self._get_updates_sync,
                offset=offset,
                timeout_seconds=timeout_seconds,
                limit=limit,
                allowed_updates=allowed_updates,
            )
        )
