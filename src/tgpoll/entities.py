"""Pydantic entities for Telegram Bot API payloads.

Only the fields the poller and its diagnostics read are declared. Every model
allows extra fields, so update kinds and message attributes not listed here
survive decoding untouched and stay opaque to the polling core.

Reference: <https://core.telegram.org/bots/api#available-types>.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from tgpoll.cursor import next_update_id


class _TelegramModel(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)


class User(_TelegramModel):
    """<https://core.telegram.org/bots/api#user>."""

    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: str | None = None
    username: str | None = None


class BotUser(User):
    """`getMe` result: a `User` plus bot capability flags."""

    can_join_groups: bool | None = None
    can_read_all_group_messages: bool | None = None
    supports_inline_queries: bool | None = None


class Chat(_TelegramModel):
    """<https://core.telegram.org/bots/api#chat>.

    `title` applies to groups; `first_name`/`last_name`/`username` apply to
    private chats.
    """

    id: int
    type: str
    title: str | None = None
    all_members_are_administrators: bool | None = None
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None


class Message(_TelegramModel):
    """<https://core.telegram.org/bots/api#message>."""

    message_id: int
    from_: User | None = Field(default=None, alias="from")
    chat: Chat
    date: int
    text: str | None = None


class Update(_TelegramModel):
    """One inbound event. `update_id` is assigned by Telegram, never by us."""

    update_id: int
    message: Message | None = None


class GetUpdatesResponse(_TelegramModel):
    """Envelope returned by `getUpdates`.

    A missing `result` (e.g. `ok=false`) is read as an empty batch.
    """

    ok: bool
    result: list[Update] | None = None
    error_code: int | None = None
    description: str | None = None

    @property
    def updates(self) -> list[Update]:
        return list(self.result or [])

    def next_update_id(self) -> int | None:
        """Offset to request next, or `None` when this batch was empty."""

        return next_update_id(self.updates)


class GetMeResponse(_TelegramModel):
    """Envelope returned by `getMe`."""

    ok: bool
    result: BotUser | None = None
    error_code: int | None = None
    description: str | None = None
