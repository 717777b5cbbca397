"""Configuration management for the MAVLink monitor."""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from pathlib import Path
import os

import yaml


@dataclass
class StoreConfig:
    """Raw message store configuration."""
    stale_ms: float = 3000
    history_size: int = 64
    ema_alpha: float = 0.2  # weight of the newest rate sample


@dataclass
class IngestConfig:
    """Record source configuration."""
    source: str = "-"  # path to JSON lines, "-" for stdin
    follow: bool = False
    poll_interval: float = 0.5  # seconds
    queue_size: int = 10000


@dataclass
class ExportConfig:
    """Export configuration."""
    output_dir: str = "./reports"
    include_history: bool = False


@dataclass
class DashboardConfig:
    """Dashboard configuration."""
    refresh_rate: float = 1.0  # seconds


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"


@dataclass
class MonitorConfig:
    """Main configuration container."""
    store: StoreConfig = field(default_factory=StoreConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitorConfig":
        """Create config from dictionary."""
        config = cls()

        if "store" in data:
            st = data["store"]
            config.store = StoreConfig(
                stale_ms=st.get("stale_ms", 3000),
                history_size=st.get("history_size", 64),
                ema_alpha=st.get("ema_alpha", 0.2),
            )

        if "ingest" in data:
            ing = data["ingest"]
            config.ingest = IngestConfig(
                source=ing.get("source", "-"),
                follow=ing.get("follow", False),
                poll_interval=ing.get("poll_interval", 0.5),
                queue_size=ing.get("queue_size", 10000),
            )

        if "export" in data:
            exp = data["export"]
            config.export = ExportConfig(
                output_dir=exp.get("output_dir", "./reports"),
                include_history=exp.get("include_history", False),
            )

        if "dashboard" in data:
            dash = data["dashboard"]
            config.dashboard = DashboardConfig(
                refresh_rate=dash.get("refresh_rate", 1.0),
            )

        if "logging" in data:
            config.logging = LoggingConfig(
                level=data["logging"].get("level", "INFO"),
            )

        return config

    @classmethod
    def from_yaml(cls, path: str) -> "MonitorConfig":
        """Load config from YAML file."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def load(cls, path: Optional[str] = None) -> "MonitorConfig":
        """Load config from file or use defaults."""
        if path and not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        search_paths = [
            path,
            "config.yaml",
            "config.yml",
            os.path.expanduser("~/.config/mavlink-monitor/config.yaml"),
            "/etc/mavlink-monitor/config.yaml",
        ]

        for config_path in search_paths:
            if config_path and os.path.exists(config_path):
                return cls.from_yaml(config_path)

        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "store": {
                "stale_ms": self.store.stale_ms,
                "history_size": self.store.history_size,
                "ema_alpha": self.store.ema_alpha,
            },
            "ingest": {
                "source": self.ingest.source,
                "follow": self.ingest.follow,
                "poll_interval": self.ingest.poll_interval,
                "queue_size": self.ingest.queue_size,
            },
            "export": {
                "output_dir": self.export.output_dir,
                "include_history": self.export.include_history,
            },
            "dashboard": {
                "refresh_rate": self.dashboard.refresh_rate,
            },
            "logging": {
                "level": self.logging.level,
            },
        }

    def save_yaml(self, path: str) -> None:
        """Save config to YAML file."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)
