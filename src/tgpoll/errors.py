"""Error taxonomy for Telegram Bot API calls.

- `TelegramTransportError`: the request did not complete (network, TLS,
  timeout, HTTP status without a Bot API envelope). The only retryable kind.
- `TelegramDecodeError`: the body is not JSON or not the expected shape.
- `TelegramRemoteError`: Telegram answered `ok=false`.
"""

from __future__ import annotations


class TelegramBotApiError(RuntimeError):
    """Base class for failures talking to the Telegram Bot API."""

    def __init__(self, message: str, *, method: str) -> None:
        super().__init__(message)
        self.method = method


class TelegramTransportError(TelegramBotApiError):
    """Raised when a request could not be completed."""


class TelegramDecodeError(TelegramBotApiError):
    """Raised when a response body cannot be decoded."""


class TelegramRemoteError(TelegramBotApiError):
    """Raised when Telegram reports a logical failure (`ok=false`)."""

    def __init__(
        self,
        *,
        method: str,
        error_code: int | None = None,
        description: str | None = None,
    ) -> None:
        message = f"Telegram {method} failed"
        if error_code is not None:
            message += f": error_code={error_code}"
        if description:
            message += f": {description}"
        super().__init__(message, method=method)
        self.error_code = error_code
        self.description = description
