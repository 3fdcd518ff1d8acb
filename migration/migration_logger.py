"""
Per-item outcome log for batch stages.

Log Levels:
- ERROR: Failed items (parse failures, rejected submissions, retries exhausted)
- WARNING: Items that went through with caveats (retried after rate limit)
- INFO: Successful items

Entries are appended to a JSONL file so a run can be reviewed after the
fact; the batch result itself only carries counts.
"""

from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union
import json


class LogLevel(Enum):
    ERROR = 1
    WARNING = 2
    INFO = 3

    def __str__(self):
        return self.name


@dataclass
class LogEntry:
    """Single log entry with level, timestamp, and message."""
    level: LogLevel
    message: str
    item: Optional[str] = None  # document or asset id
    title: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return {
            'level': str(self.level),
            'timestamp': self.timestamp,
            'message': self.message,
            'item': self.item,
            'title': self.title,
        }


class MigrationLogger:
    """
    Collects outcome entries during one batch run and appends them to a
    JSONL run log.
    """

    def __init__(self, operation: str, log_file: Union[str, Path, None] = None):
        self.operation = operation
        self.log_file = Path(log_file) if log_file else None
        self.run_started = datetime.now(timezone.utc).isoformat()
        self.entries: List[LogEntry] = []

    def _add(self, level: LogLevel, message: str, item: str = None, title: str = None) -> LogEntry:
        entry = LogEntry(level=level, message=message, item=item, title=title)
        self.entries.append(entry)
        return entry

    def error(self, message: str, item: str = None, title: str = None) -> LogEntry:
        return self._add(LogLevel.ERROR, message, item, title)

    def warning(self, message: str, item: str = None, title: str = None) -> LogEntry:
        return self._add(LogLevel.WARNING, message, item, title)

    def info(self, message: str, item: str = None, title: str = None) -> LogEntry:
        return self._add(LogLevel.INFO, message, item, title)

    def get_entries_by_level(self, level: LogLevel) -> List[LogEntry]:
        return [e for e in self.entries if e.level == level]

    def failed_items(self) -> List[str]:
        """Items with at least one ERROR entry, in order of first failure."""
        items: List[str] = []
        for entry in self.get_entries_by_level(LogLevel.ERROR):
            if entry.item and entry.item not in items:
                items.append(entry.item)
        return items

    def write(self) -> int:
        """Append entries to the run log (JSONL). Returns entries written."""
        if not self.log_file or not self.entries:
            return 0

        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.log_file, 'a', encoding='utf-8') as f:
            for entry in self.entries:
                record = {
                    'operation': self.operation,
                    'run_started': self.run_started,
                    **entry.to_dict()
                }
                f.write(json.dumps(record) + '\n')
        return len(self.entries)
