"""Decoded record source reading JSON lines."""

import json
import logging
import sys
import threading
from dataclasses import dataclass
from typing import IO, Iterator, Optional, Union

from ..models.record import DecodedRecord


logger = logging.getLogger(__name__)


@dataclass
class SourceStats:
    """Statistics for a record source."""
    lines_read: int = 0
    records_emitted: int = 0
    malformed: int = 0


class JsonLinesSource:
    """
    Reads decoded MAVLink records, one JSON object per line.

    Accepts a file path, "-" for stdin, or an open text stream. Lines that
    fail to parse are logged and counted, never fatal.
    """

    def __init__(
        self,
        source: Union[str, IO[str]],
        follow: bool = False,
        poll_interval: float = 0.5,
    ):
        """
        Args:
            source: Path, "-" for stdin, or a readable text stream
            follow: Keep reading lines appended after EOF until stop()
            poll_interval: Seconds between polls when following
        """
        self.source = source
        self.follow = follow
        self.poll_interval = poll_interval

        self._stats = SourceStats()
        self._stats_lock = threading.Lock()
        self._stop_event = threading.Event()

    @property
    def name(self) -> str:
        if isinstance(self.source, str):
            return "<stdin>" if self.source == "-" else self.source
        return getattr(self.source, "name", "<stream>")

    def stop(self) -> None:
        """Stop following the source."""
        self._stop_event.set()

    def __iter__(self) -> Iterator[DecodedRecord]:
        if isinstance(self.source, str) and self.source != "-":
            with open(self.source, 'rb') as f:
                yield from self._read(f)
        elif isinstance(self.source, str):
            yield from self._read(sys.stdin.buffer)
        else:
            yield from self._read(self.source)

    def _read(self, stream: IO) -> Iterator[DecodedRecord]:
        lineno = 0
        while not self._stop_event.is_set():
            line = stream.readline()
            if not line:
                if not self.follow:
                    break
                self._stop_event.wait(self.poll_interval)
                continue

            lineno += 1
            with self._stats_lock:
                self._stats.lines_read += 1

            record = self._parse_line(line, lineno)
            if record is None:
                continue

            with self._stats_lock:
                self._stats.records_emitted += 1
            yield record

    def _parse_line(
        self, line: Union[str, bytes], lineno: int
    ) -> Optional[DecodedRecord]:
        """Parse one line. Returns None for blank or malformed lines."""
        if not line.strip():
            return None

        try:
            if isinstance(line, bytes):
                line = line.decode("utf-8")
            return DecodedRecord.from_dict(json.loads(line))
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are ValueErrors too
            with self._stats_lock:
                self._stats.malformed += 1
            logger.warning("%s:%d: skipping malformed record: %s", self.name, lineno, e)
            return None

    def get_stats(self) -> SourceStats:
        """Get source statistics."""
        with self._stats_lock:
            return SourceStats(
                lines_read=self._stats.lines_read,
                records_emitted=self._stats.records_emitted,
                malformed=self._stats.malformed,
            )
