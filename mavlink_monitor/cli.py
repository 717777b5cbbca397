"""Command-line interface for the MAVLink monitor."""

import argparse
import logging
import signal
import sys
import threading
import time
from typing import List, Optional

from rich.console import Console, Group
from rich.logging import RichHandler
from rich.table import Table
from rich.live import Live
from rich.panel import Panel
from rich.pretty import Pretty
from rich.text import Text
from rich import box
import yaml

from . import __version__
from .config import MonitorConfig
from .ingest.jsonl_source import JsonLinesSource
from .processing.record_processor import RecordProcessor
from .storage.raw_store import RawStore
from .storage.ring_buffer import InvalidArgumentError
from .export.json_exporter import JSONExporter
from .models.brief import MsgDetail


console = Console()
logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Route log records through Rich on the shared console."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


class MonitorApp:
    """Main application coordinator."""

    def __init__(self, config: Optional[MonitorConfig] = None):
        self.config = config or MonitorConfig()

        self.store: Optional[RawStore] = None
        self.processor: Optional[RecordProcessor] = None
        self.source: Optional[JsonLinesSource] = None

        self._feeder: Optional[threading.Thread] = None
        self._running = False
        self._start_time = 0.0

    def initialize(self, source: Optional[str] = None) -> List[str]:
        """Initialize all components. Returns list of issues."""
        issues = []

        try:
            self.store = RawStore.from_config(self.config.store)
        except InvalidArgumentError as e:
            issues.append(f"Invalid store configuration: {e}")
            return issues

        self.processor = RecordProcessor(
            store=self.store,
            queue_size=self.config.ingest.queue_size,
        )

        self.source = JsonLinesSource(
            source or self.config.ingest.source,
            follow=self.config.ingest.follow,
            poll_interval=self.config.ingest.poll_interval,
        )

        return issues

    def replay(self) -> int:
        """Apply every record of the source on the calling thread."""
        return self.processor.process_all(self.source)

    def start(self) -> None:
        """Start the processor and a feeder thread reading the source."""
        if self._running:
            return

        self._running = True
        self._start_time = time.time()
        self.processor.start()

        self._feeder = threading.Thread(
            target=self._feed_loop,
            daemon=True,
            name="record-feeder",
        )
        self._feeder.start()

    def _feed_loop(self) -> None:
        try:
            self.processor.feed(self.source)
        except (OSError, ValueError) as e:
            logger.error("Cannot read %s: %s", self.source.name, e)

    def stop(self) -> None:
        """Stop reading and processing."""
        self._running = False
        if self.source:
            self.source.stop()
        if self.processor:
            self.processor.stop(drain_queue=True)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def source_exhausted(self) -> bool:
        """True once the feeder finished and the queue is empty."""
        feeder_done = self._feeder is not None and not self._feeder.is_alive()
        return feeder_done and self.processor.queue_size == 0

    @property
    def duration(self) -> float:
        if self._start_time == 0:
            return 0.0
        return time.time() - self._start_time


def build_store_table(store: RawStore) -> Table:
    """Create Rich table with one row per observed message."""
    table = Table(
        title="MAVLink Messages",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold cyan",
    )

    table.add_column("Sys", justify="right", style="bold")
    table.add_column("Comp", justify="right")
    table.add_column("MsgId", justify="right")
    table.add_column("Count", justify="right")
    table.add_column("Hz", justify="right")
    table.add_column("Last (ms)", justify="right")
    table.add_column("Status", justify="right")

    for sysid, compid, msg_id in store.list_keys():
        brief = store.get_msg_brief(sysid, compid, msg_id)
        if brief is None:
            continue

        hz = f"{brief.hz_ema:.2f}" if brief.hz_ema is not None else "-"
        last = f"{brief.last_t:.0f}" if brief.last_t is not None else "-"
        status = Text("STALE", style="red") if brief.stale else Text("FRESH", style="green")

        table.add_row(
            str(sysid),
            str(compid),
            str(msg_id),
            f"{brief.count:,}",
            hz,
            last,
            status,
        )

    summary = store.get_summary()
    table.caption = (
        f"{summary['entry_count']} messages | "
        f"{summary['total_records']:,} records | "
        f"stale after {summary['stale_ms']}ms"
    )
    return table


def build_detail_panel(sysid: int, detail: MsgDetail) -> Panel:
    """Create panel showing one message's latest payload and history."""
    hz = f"{detail.hz_ema:.2f} Hz" if detail.hz_ema is not None else "no rate"
    header = Text(
        f"count={detail.count:,}  {hz}  last_t={detail.last_t}  "
        f"{'STALE' if detail.stale else 'FRESH'}",
        style="red" if detail.stale else "green",
    )

    parts = [header, Text(""), Text("Last payload:", style="bold"), Pretty(detail.last_payload)]
    if detail.history is not None:
        parts.append(Text(""))
        parts.append(Text(f"History ({len(detail.history)} items):", style="bold"))
        for item in detail.history:
            parts.append(Text(f"  t={item.t}  {item.payload}", style="dim"))

    return Panel(
        Group(*parts),
        title=f"sys {sysid} / comp {detail.compid} / msg {detail.msg_id}",
        border_style="cyan",
    )


def _load_config(args) -> MonitorConfig:
    try:
        config = MonitorConfig.load(getattr(args, "config", None))
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Cannot load config: {e}[/red]")
        sys.exit(1)

    if getattr(args, "history_size", None) is not None:
        config.store.history_size = args.history_size
    if getattr(args, "stale_ms", None) is not None:
        config.store.stale_ms = args.stale_ms
    if getattr(args, "follow", False):
        config.ingest.follow = True
    return config


def _create_app(args, source: Optional[str]) -> MonitorApp:
    config = _load_config(args)
    if args.log_level is None:
        setup_logging(config.logging.level)
    app = MonitorApp(config=config)

    issues = app.initialize(source)
    if issues:
        console.print("[red]Cannot start monitor:[/red]")
        for issue in issues:
            console.print(f"  - {issue}")
        sys.exit(1)
    return app


def _replay_source(app: MonitorApp) -> None:
    try:
        app.replay()
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read {app.source.name}: {e}[/red]")
        sys.exit(1)


def run_replay(args) -> None:
    """Apply a recorded stream and print the resulting store."""
    app = _create_app(args, args.source)
    _replay_source(app)

    stats = app.source.get_stats()
    console.print(build_store_table(app.store))
    console.print(
        f"[cyan]Lines: {stats.lines_read:,} | "
        f"Records: {stats.records_emitted:,} | "
        f"Malformed: {stats.malformed:,}[/cyan]"
    )

    if args.export:
        exporter = JSONExporter(output_dir=args.export)
        include = args.include_history or app.config.export.include_history
        path = exporter.export_snapshot(app.store, include_history=include)
        console.print(f"[green]Snapshot written to {path}[/green]")


def run_show(args) -> None:
    """Replay a stream and print the detail of one message."""
    app = _create_app(args, args.source)
    _replay_source(app)

    detail = app.store.get_msg_detail(
        args.sysid, args.compid, args.msgid, include_history=args.history
    )
    if detail is None:
        console.print(
            f"[yellow]No message {args.msgid} from sys {args.sysid} comp {args.compid}[/yellow]"
        )
        sys.exit(1)

    console.print(build_detail_panel(args.sysid, detail))


def run_watch(args) -> None:
    """Stream records into the store with a live view."""
    app = _create_app(args, args.source)

    if args.tui:
        if app.source.name == "<stdin>":
            console.print("[red]--tui needs a file source; stdin is used by the terminal[/red]")
            sys.exit(1)

        from .ui.dashboard import MonitorDashboard

        app.start()
        try:
            MonitorDashboard(
                store=app.store,
                processor=app.processor,
                refresh_rate=app.config.dashboard.refresh_rate,
                exporter=JSONExporter(output_dir=app.config.export.output_dir),
            ).run()
        finally:
            app.stop()
        return

    def signal_handler(sig, frame):
        console.print("\n[yellow]Stopping monitor...[/yellow]")
        app.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    end_time = time.time() + args.duration if args.duration > 0 else float('inf')
    app.start()

    with Live(build_store_table(app.store), console=console, refresh_per_second=2) as live:
        while app.is_running and time.time() < end_time:
            time.sleep(app.config.dashboard.refresh_rate)
            live.update(build_store_table(app.store))
            if not app.config.ingest.follow and app.source_exhausted:
                break

    app.stop()
    stats = app.processor.get_stats()
    console.print(
        f"[cyan]Processed: {stats.records_processed:,} | "
        f"Dropped: {stats.records_dropped:,} | "
        f"Errors: {stats.processing_errors:,}[/cyan]"
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="mavlink-monitor",
        description="Live aggregate of decoded MAVLink telemetry: last value, rate, staleness and history.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Shared store options
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-c", "--config",
        help="Path to configuration file",
    )
    common.add_argument(
        "--history-size",
        type=int,
        help="Per-message history depth",
    )
    common.add_argument(
        "--stale-ms",
        type=float,
        help="Milliseconds without updates before a message is stale",
    )

    replay_parser = subparsers.add_parser(
        "replay", parents=[common], help="Apply a recorded JSON-lines stream and summarize it"
    )
    replay_parser.add_argument("source", help="JSON-lines file of decoded records ('-' for stdin)")
    replay_parser.add_argument(
        "-o", "--export",
        metavar="DIR",
        help="Write a JSON snapshot of the store to DIR",
    )
    replay_parser.add_argument(
        "--include-history",
        action="store_true",
        help="Include per-message history in the snapshot",
    )

    show_parser = subparsers.add_parser(
        "show", parents=[common], help="Show the latest value of one message"
    )
    show_parser.add_argument("source", help="JSON-lines file of decoded records ('-' for stdin)")
    show_parser.add_argument("sysid", type=int)
    show_parser.add_argument("compid", type=int)
    show_parser.add_argument("msgid", type=int)
    show_parser.add_argument(
        "--history",
        action="store_true",
        help="Also print the bounded history",
    )

    watch_parser = subparsers.add_parser(
        "watch", parents=[common], help="Stream records with a live table"
    )
    watch_parser.add_argument(
        "source",
        nargs="?",
        default=None,
        help="JSON-lines file of decoded records (default from config, '-' for stdin)",
    )
    watch_parser.add_argument(
        "--follow",
        action="store_true",
        help="Keep reading records appended to the file",
    )
    watch_parser.add_argument(
        "--tui",
        action="store_true",
        help="Show the Textual dashboard",
    )
    watch_parser.add_argument(
        "-d", "--duration",
        type=int,
        default=0,
        help="Watch duration in seconds (0 = until input ends)",
    )

    args = parser.parse_args(argv)

    setup_logging(args.log_level or "INFO")

    if args.command == "replay":
        run_replay(args)
    elif args.command == "show":
        run_show(args)
    elif args.command == "watch":
        run_watch(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
