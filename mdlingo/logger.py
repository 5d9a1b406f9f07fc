"""
Execution log for rewriter calls.

Each call is appended as one JSON object per line, so the file can be
tailed or loaded with any JSON-lines reader.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    """One rewriter call."""
    provider: str
    model: str
    task_type: str
    input_tokens: int
    output_tokens: int
    latency_ms: int
    success: bool
    error: Optional[str] = None


class ExecutionLogger:
    """Append-only JSON-lines log of rewriter calls."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: LogEntry) -> None:
        record = {"timestamp": datetime.now(timezone.utc).isoformat()}
        record.update({k: v for k, v in asdict(entry).items() if v is not None})
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
        logger.debug("Logged %s call to %s", entry.task_type, self.path)

    def read(self) -> list[dict]:
        """Load all records (empty list if the log does not exist yet)."""
        if not self.path.exists():
            return []
        with open(self.path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
