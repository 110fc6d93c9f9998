"""Telegram Bot API long-poll client.

This package polls the Telegram Bot API `getUpdates` endpoint and hands every
received update to a sink, one batch at a time, in arrival order.

Design notes / boundaries:
- Polling only (no webhook) and receive only: nothing is sent to chats.
- One `getUpdates` request is in flight at a time. The server-side long-poll
  wait (`timeout`) bounds each request; the client adds no shorter timeout.
- The next `offset` is `max(update_id) + 1` of the last non-empty batch, so
  each update is delivered once given a server that honours `offset`.
  - An empty batch leaves the offset unchanged.
  - The offset lives in memory only; a restart resumes from whatever
    Telegram still buffers.
- Any failure ends the loop unless a `RetryPolicy` allows retrying transport
  errors. Telegram answering `ok=false` is logged and read as an empty batch.
- `getMe` runs once at startup; its failure aborts before polling starts.
"""

from __future__ import annotations

from .api import TelegramBotApi
from .cli import main, run
from .config import Settings, load_settings
from .cursor import Cursor, Tracking, Uninitialized, advance, next_update_id
from .entities import (
    BotUser,
    Chat,
    GetMeResponse,
    GetUpdatesResponse,
    Message,
    Update,
    User,
)
from .errors import (
    TelegramBotApiError,
    TelegramDecodeError,
    TelegramRemoteError,
    TelegramTransportError,
)
from .poller import RetryPolicy, Sink, UpdatePoller
from .sinks import PrettyPrintSink, render_identity

__all__ = [
    "BotUser",
    "Chat",
    "Cursor",
    "GetMeResponse",
    "GetUpdatesResponse",
    "Message",
    "PrettyPrintSink",
    "RetryPolicy",
    "Settings",
    "Sink",
    "TelegramBotApi",
    "TelegramBotApiError",
    "TelegramDecodeError",
    "TelegramRemoteError",
    "TelegramTransportError",
    "Tracking",
    "Uninitialized",
    "Update",
    "UpdatePoller",
    "User",
    "advance",
    "load_settings",
    "main",
    "next_update_id",
    "render_identity",
    "run",
]
