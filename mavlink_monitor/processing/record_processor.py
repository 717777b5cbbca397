"""Record processing pipeline feeding the raw store."""

import logging
import time
from dataclasses import dataclass
from queue import Queue, Empty, Full
from threading import Thread, Event
from typing import Callable, Iterable, List, Optional

from ..models.record import DecodedRecord
from ..storage.raw_store import RawStore


logger = logging.getLogger(__name__)


@dataclass
class ProcessorStats:
    """Statistics for record processor."""
    records_processed: int = 0
    records_dropped: int = 0
    processing_errors: int = 0
    start_time: float = 0.0

    @property
    def duration(self) -> float:
        if self.start_time == 0:
            return 0.0
        return time.time() - self.start_time

    @property
    def records_per_second(self) -> float:
        if self.duration == 0:
            return 0.0
        return self.records_processed / self.duration


class RecordProcessor:
    """
    Moves decoded records from a source into the store.
    Records are queued by the producer and applied on a worker thread.
    """

    def __init__(self, store: RawStore, queue_size: int = 10000):
        self.store = store
        self._queue: Queue = Queue(maxsize=queue_size)

        # Processing state
        self._running = False
        self._stop_event = Event()
        self._worker: Optional[Thread] = None
        self._stats = ProcessorStats()

        self._record_callbacks: List[Callable[[DecodedRecord], None]] = []

    def add_record_callback(self, callback: Callable[[DecodedRecord], None]) -> None:
        """Add callback invoked after each applied record."""
        self._record_callbacks.append(callback)

    def submit(self, record: DecodedRecord) -> bool:
        """Queue a record without blocking. Returns False if it was dropped."""
        try:
            self._queue.put_nowait(record)
            return True
        except Full:
            self._stats.records_dropped += 1
            return False

    def feed(self, records: Iterable[DecodedRecord]) -> int:
        """Queue every record of an iterable, waiting for room when full.

        Returns the number queued; stops early once the processor is stopped.
        """
        queued = 0
        for record in records:
            while not self._stop_event.is_set():
                try:
                    self._queue.put(record, timeout=0.1)
                    break
                except Full:
                    continue
            else:
                break
            queued += 1
        return queued

    def process_all(self, records: Iterable[DecodedRecord]) -> int:
        """Apply records synchronously on the calling thread."""
        if self._stats.start_time == 0:
            self._stats.start_time = time.time()
        count = 0
        for record in records:
            self._handle(record)
            count += 1
        return count

    def start(self) -> None:
        """Start the worker thread."""
        if self._running:
            return

        self._running = True
        self._stop_event.clear()
        self._stats = ProcessorStats(start_time=time.time())

        self._worker = Thread(
            target=self._processing_loop,
            daemon=True,
            name="record-processor",
        )
        self._worker.start()

    def stop(self, drain_queue: bool = True) -> None:
        """Stop processing.

        Args:
            drain_queue: If True, apply all queued records before stopping
        """
        self._running = False
        self._stop_event.set()

        if self._worker:
            self._worker.join(timeout=2.0)
            self._worker = None

        if drain_queue:
            drained = 0
            while True:
                try:
                    record = self._queue.get_nowait()
                except Empty:
                    break
                self._handle(record)
                drained += 1
            if drained:
                logger.debug("Drained %d queued records", drained)

    def _processing_loop(self) -> None:
        """Main processing loop."""
        while self._running and not self._stop_event.is_set():
            try:
                record = self._queue.get(timeout=0.1)
            except Empty:
                continue
            self._handle(record)

    def _handle(self, record: DecodedRecord) -> None:
        """Apply a single record and notify callbacks."""
        try:
            self.store.apply(record)
            self._stats.records_processed += 1
        except Exception:
            self._stats.processing_errors += 1
            logger.exception("Failed to apply record %s", record.key)
            return

        for callback in self._record_callbacks:
            try:
                callback(record)
            except Exception:
                logger.exception("Record callback failed")

    def get_stats(self) -> ProcessorStats:
        """Get processor statistics."""
        return ProcessorStats(
            records_processed=self._stats.records_processed,
            records_dropped=self._stats.records_dropped,
            processing_errors=self._stats.processing_errors,
            start_time=self._stats.start_time,
        )

    def is_running(self) -> bool:
        """Check if processor is running."""
        return self._running

    @property
    def queue_size(self) -> int:
        """Current number of queued records."""
        return self._queue.qsize()
