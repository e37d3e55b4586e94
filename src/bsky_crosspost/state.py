"""Remember which source posts were cross-posted and where.

State is stored in .state/crossposted.json as a JSON object:
    {
        "records": {"109876543210": "at://did:plc:abc/app.bsky.feed.post/3k..."},
        "last_run": "2025-01-15T14:30:00+00:00",
        "total_crossposted": 142
    }
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class StateManager:
    def __init__(self, state_dir: Path = Path(".state")):
        self.state_dir = state_dir
        self.state_file = state_dir / "crossposted.json"
        self._records: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        """Load state from disk."""
        if self.state_file.exists():
            data = json.loads(self.state_file.read_text())
            self._records = dict(data.get("records", {}))
            logger.info("Loaded %d cross-posted records from state", len(self._records))
        else:
            logger.info("No existing state found. Starting fresh.")

    def save(self) -> None:
        """Persist state to disk."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        data = {
            "records": dict(sorted(self._records.items())),
            "last_run": datetime.now(timezone.utc).isoformat(),
            "total_crossposted": len(self._records),
        }
        self.state_file.write_text(json.dumps(data, indent=2))

    def is_crossposted(self, post_id: str) -> bool:
        return post_id in self._records

    def record_uri(self, post_id: str) -> str | None:
        return self._records.get(post_id)

    def mark_crossposted(self, post_id: str, record_uri: str) -> None:
        self._records[post_id] = record_uri

    def forget(self, post_id: str) -> str | None:
        """Drop a post from state, returning the record URI it had."""
        return self._records.pop(post_id, None)

    @property
    def count(self) -> int:
        return len(self._records)
