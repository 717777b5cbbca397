"""Export functionality for store snapshots."""

from .json_exporter import JSONExporter

__all__ = ["JSONExporter"]
