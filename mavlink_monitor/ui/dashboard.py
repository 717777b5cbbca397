"""Main Textual dashboard for the MAVLink monitor."""

from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Header, Footer, Static
from textual.timer import Timer
from typing import Optional
import logging

from ..storage.raw_store import RawStore
from ..processing.record_processor import RecordProcessor
from ..export.json_exporter import JSONExporter
from .widgets.message_table import MessageTable


logger = logging.getLogger(__name__)


class StatusBar(Static):
    """Status bar showing ingest status."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.records = 0
        self.entries = 0
        self.rate = 0.0

    def update_stats(self, records: int, entries: int, rate: float) -> None:
        self.records = records
        self.entries = entries
        self.rate = rate
        self.refresh()

    def render(self) -> str:
        return (
            f"  Records: {self.records:,}  |  Messages: {self.entries:,}  |  "
            f"Rate: {self.rate:.1f} rec/s  "
        )


class MonitorDashboard(App):
    """Live view of the raw message store."""

    CSS = """
    #status-bar {
        height: 1;
        background: $primary;
        color: $text;
        text-align: center;
    }

    MessageTable {
        height: 100%;
        margin: 1;
        border: solid $primary;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("p", "toggle_pause", "Pause/Resume"),
        ("r", "reset_stats", "Reset"),
        ("e", "export", "Export"),
    ]

    def __init__(
        self,
        store: RawStore,
        processor: Optional[RecordProcessor] = None,
        refresh_rate: float = 1.0,
        exporter: Optional[JSONExporter] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.store = store
        self.processor = processor
        self.refresh_rate = refresh_rate
        self.exporter = exporter
        self._paused = False
        self._update_timer: Optional[Timer] = None

    def compose(self) -> ComposeResult:
        """Compose the dashboard layout."""
        yield Header()
        yield StatusBar(id="status-bar")
        with Vertical(id="body"):
            yield MessageTable(id="messages")
        yield Footer()

    def on_mount(self) -> None:
        """Start update timer when mounted."""
        self._update_timer = self.set_interval(self.refresh_rate, self.update_dashboard)
        self.update_dashboard()

    def update_dashboard(self) -> None:
        """Refresh widgets from the store."""
        if self._paused:
            return

        rows = []
        for sysid, compid, msg_id in self.store.list_keys():
            brief = self.store.get_msg_brief(sysid, compid, msg_id)
            if brief is not None:
                rows.append((sysid, brief))

        self.query_one("#messages", MessageTable).update_briefs(rows, self.store.now())

        summary = self.store.get_summary()
        rate = self.processor.get_stats().records_per_second if self.processor else 0.0
        self.query_one("#status-bar", StatusBar).update_stats(
            records=summary["total_records"],
            entries=summary["entry_count"],
            rate=rate,
        )

    def action_toggle_pause(self) -> None:
        """Toggle pause state."""
        self._paused = not self._paused
        status = "PAUSED" if self._paused else "RUNNING"
        self.notify(f"Display {status}")

    def action_reset_stats(self) -> None:
        """Reset statistics."""
        self.store.reset_stats()
        self.update_dashboard()
        self.notify("Statistics reset")

    def action_export(self) -> None:
        """Export current snapshot."""
        exporter = self.exporter or JSONExporter()
        path = exporter.export_snapshot(self.store)
        logger.info("Snapshot exported to %s", path)
        self.notify(f"Exported {path}")
