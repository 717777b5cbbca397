"""JSON export functionality."""

import json
from datetime import datetime
from typing import Dict, Any, Optional
from pathlib import Path

from ..storage.raw_store import RawStore


class JSONExporter:
    """Export raw store snapshots to JSON format."""

    def __init__(self, output_dir: str = "./reports"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def build_snapshot(
        self, store: RawStore, include_history: bool = False
    ) -> Dict[str, Any]:
        """Build a nested sysid -> compid -> msgId snapshot of the store."""
        data = {
            "export_time": datetime.now().isoformat(),
            "summary": store.get_summary(),
            "systems": {},
        }

        for sysid, compid, msg_id in store.list_keys():
            detail = store.get_msg_detail(
                sysid, compid, msg_id, include_history=include_history
            )
            if detail is None:
                continue
            components = data["systems"].setdefault(str(sysid), {})
            messages = components.setdefault(str(compid), {})
            messages[str(msg_id)] = detail.to_dict()

        return data

    def export_snapshot(
        self,
        store: RawStore,
        include_history: bool = False,
        filename: Optional[str] = None,
    ) -> str:
        """Export store snapshot to JSON. Returns the file path."""
        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filename = f"snapshot_{timestamp}.json"

        data = self.build_snapshot(store, include_history=include_history)

        filepath = self.output_dir / filename
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2, default=str)

        return str(filepath)
