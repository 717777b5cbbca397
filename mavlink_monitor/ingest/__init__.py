"""Record sources feeding the processor."""

from .jsonl_source import JsonLinesSource, SourceStats

__all__ = ["JsonLinesSource", "SourceStats"]
