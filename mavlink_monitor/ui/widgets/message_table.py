"""Message table widget listing every observed message."""

from textual.widgets import Static
from typing import List, Tuple

from ...models.brief import MsgBrief


class MessageTable(Static):
    """Table of per-message briefs grouped by system."""

    DEFAULT_CSS = """
    MessageTable {
        height: 100%;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._rows: List[Tuple[int, MsgBrief]] = []
        self._now = 0.0

    def update_briefs(self, rows: List[Tuple[int, MsgBrief]], now: float) -> None:
        """Update displayed rows of (sysid, brief)."""
        self._rows = rows
        self._now = now
        self.refresh()

    def _format_age(self, brief: MsgBrief) -> str:
        age = brief.age_ms(self._now)
        if age is None:
            return "-"
        if age >= 60_000:
            return f"{age / 60_000:.1f}m"
        if age >= 1_000:
            return f"{age / 1_000:.1f}s"
        return f"{age:.0f}ms"

    def render(self) -> str:
        """Render the message table."""
        lines = ["[bold blue]MESSAGES[/bold blue]", ""]

        if not self._rows:
            lines.append("[dim]No messages received yet...[/dim]")
            return "\n".join(lines)

        lines.append(
            "[dim]"
            f"{'Sys':>4} {'Comp':>5} {'MsgId':>6} {'Count':>9} {'Hz':>8} {'Age':>8}"
            "[/dim]"
        )
        lines.append("[dim]" + "-" * 45 + "[/dim]")

        for sysid, brief in self._rows:
            hz = f"{brief.hz_ema:.2f}" if brief.hz_ema is not None else "-"
            color = "red" if brief.stale else "green"
            lines.append(
                f"{sysid:>4} {brief.compid:>5} {brief.msg_id:>6} "
                f"{brief.count:>9,} {hz:>8} "
                f"[{color}]{self._format_age(brief):>8}[/{color}]"
            )

        return "\n".join(lines)
