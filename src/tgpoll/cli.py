"""CLI entrypoint for the long-poll client."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import anyio
import logfire
from rich.console import Console

from tgpoll.api import TelegramBotApi
from tgpoll.config import Settings, load_settings
from tgpoll.poller import RetryPolicy, UpdatePoller
from tgpoll.sinks import PrettyPrintSink, render_identity

logger = logging.getLogger(__name__)


def _parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tgpoll",
        description="Telegram Bot API long-poll client (getUpdates -> console).",
    )
    parser.add_argument(
        "--settings-file",
        type=Path,
        default=None,
        help="TOML settings file (default: ./settings.toml when present).",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Telegram bot token (never printed). Defaults to TGPOLL_ACCESS_TOKEN.",
    )
    parser.add_argument(
        "--timeout-seconds",
        type=int,
        default=None,
        help="getUpdates long-poll wait in seconds (default 60).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum updates per getUpdates call (1-100, server default 100).",
    )
    parser.add_argument(
        "--allowed-update",
        action="append",
        dest="allowed_updates",
        default=None,
        help="Update kind to receive (repeatable), e.g. 'message'.",
    )
    parser.add_argument(
        "--retry-max-retries",
        type=int,
        default=None,
        help="Retry transport errors this many times in a row (default 0: fail fast).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="DEBUG/INFO/WARNING/ERROR (default INFO).",
    )
    return parser.parse_args(argv)


def _configure_logging(level: str) -> None:
    logfire.configure(send_to_logfire="if-token-present")
    logging.basicConfig(level=level, handlers=[logfire.LogfireLoggingHandler()])


def build_poller(
    settings: Settings, api: TelegramBotApi, console: Console | None = None
) -> UpdatePoller:
    return UpdatePoller(
        api,
        PrettyPrintSink(console),
        timeout_seconds=settings.timeout_seconds,
        limit=settings.limit,
        allowed_updates=settings.allowed_updates,
        retry=RetryPolicy(
            max_retries=settings.retry_max_retries,
            initial_backoff_seconds=settings.retry_initial_backoff_seconds,
            max_backoff_seconds=settings.retry_max_backoff_seconds,
        ),
    )


async def run(
    settings: Settings,
    *,
    console: Console | None = None,
    stop: anyio.Event | None = None,
) -> None:
    """Check the bot identity, then poll until a failure (or `stop`).

    A failing `getMe` aborts before the first `getUpdates`.
    """

    api = TelegramBotApi(
        token=settings.access_token.get_secret_value(),
        base_url=settings.api_base_url,
    )
    me = await api.get_me()
    render_identity(me, console)
    # get_me() raises when the result is missing.
    bot = me.result
    logger.info("bot identity: id=%s username=%s", bot.id, bot.username)  # type: ignore[union-attr]

    poller = build_poller(settings, api, console)
    await poller.run_forever(stop=stop)


async def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint."""

    args = _parse_cli_args(argv)
    settings = load_settings(
        args.settings_file,
        access_token=args.token,
        timeout_seconds=args.timeout_seconds,
        limit=args.limit,
        allowed_updates=args.allowed_updates,
        retry_max_retries=args.retry_max_retries,
        log_level=args.log_level,
    )
    _configure_logging(settings.log_level)
    await run(settings)


def entrypoint() -> None:
    """Console-script entrypoint."""

    anyio.run(main)
