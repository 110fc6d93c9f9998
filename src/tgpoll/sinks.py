"""Delivery sinks for received update batches.

A sink is any async callable taking the batch (`list[Update]`). The bundled
one renders batches for humans; real applications plug in their own handler.
"""

from __future__ import annotations

from rich.console import Console
from rich.pretty import Pretty

from tgpoll.entities import GetMeResponse, Update


class PrettyPrintSink:
    """Render every received update with `rich`, one block per update."""

    def __init__(self, console: Console | None = None, *, show_empty: bool = False) -> None:
        self._console = console or Console()
        self._show_empty = show_empty

    async def __call__(self, updates: list[Update]) -> None:
        if not updates and not self._show_empty:
            return

        ids = [update.update_id for update in updates]
        id_span = f"{min(ids)}..{max(ids)}" if ids else "-"
        self._console.print(
            f"[cyan]telegram recv[/cyan] updates={len(updates)} update_id={id_span}"
        )
        for update in updates:
            self._console.print(
                Pretty(update.model_dump(by_alias=True, exclude_none=True))
            )


def render_identity(me: GetMeResponse, console: Console | None = None) -> None:
    """Print the `getMe` answer once at startup."""

    console = console or Console()
    console.print("[green]telegram getMe[/green]")
    console.print(Pretty(me.model_dump(by_alias=True, exclude_none=True)))
