"""Processing layer for decoded records."""

from .record_processor import RecordProcessor, ProcessorStats

__all__ = ["RecordProcessor", "ProcessorStats"]
