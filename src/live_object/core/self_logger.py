"""
Self-Logger

Each cache logs its own refresh history (not to an external logging system).

Design:
- Logs stored in TSV files (human-readable, grep-able)
- Append-only
- One log directory per identifier: logs/{slug}/log.tsv
- Log rotation when file exceeds size limit
- Query logs with filters (level, custom fields)
"""

import csv
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


DEFAULT_MAX_LOG_SIZE = 10 * 1024 * 1024  # 10MB

BASE_FIELDS = ['timestamp', 'level', 'message']


def identifier_slug(identifier: str) -> str:
    """
    Directory-safe name for an identifier.

    'scripts/greeter.py' -> 'scripts_greeter.py'
    'https://host/x.py' -> 'https_host_x.py'
    """
    slug = re.sub(r'[^A-Za-z0-9._-]+', '_', identifier).strip('_.')
    return slug or 'source'


class SelfLogger:
    """
    Self-logging for a recompilation cache.

    Entries are written to {base_dir}/logs/{slug}/log.tsv.
    """

    def __init__(
        self,
        identifier: str,
        base_dir: Path | str,
        max_log_size: Optional[int] = None,
    ):
        """
        Initialize self-logger.

        Args:
            identifier: Identifier of the source being cached
            base_dir: Base directory for log storage
            max_log_size: Maximum log file size in bytes before rotation
                          (default: 10MB)
        """
        self.identifier = identifier
        self.base_dir = Path(base_dir)
        self.max_log_size = max_log_size or DEFAULT_MAX_LOG_SIZE

        self.log_dir = self.base_dir / 'logs' / identifier_slug(identifier)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / 'log.tsv'

        # Header of log_file as last written by us, valid while the file
        # still has the size we left it at
        self._header: Optional[List[str]] = None
        self._header_size: Optional[int] = None

    def log(self, level: str, message: str, **kwargs) -> None:
        """
        Log an entry.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR)
            message: Log message
            **kwargs: Additional fields (stage, generation, error, etc.)
        """
        self._rotate_if_needed()

        entry = {
            'timestamp': datetime.now().isoformat(),
            'level': level,
            'message': message,
            **kwargs,
        }

        # Don't log empty fields
        entry = {k: _clean(v) for k, v in entry.items() if v is not None}

        is_new_file = not self.log_file.exists()
        fieldnames = self._current_fieldnames(is_new_file)
        new_fields = [key for key in entry if key not in fieldnames]

        if new_fields and not is_new_file:
            # Header has to grow, rewrite the file with the wider header
            self._rewrite_with_fields(fieldnames + new_fields)

        fieldnames = fieldnames + new_fields

        with open(self.log_file, 'a', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, delimiter='\t')

            if is_new_file:
                writer.writeheader()

            writer.writerow(entry)

        self._header = fieldnames
        self._header_size = self.log_file.stat().st_size

    def debug(self, message: str, **kwargs) -> None:
        """Log DEBUG level message"""
        self.log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log INFO level message"""
        self.log('INFO', message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log WARNING level message"""
        self.log('WARNING', message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        """Log ERROR level message"""
        self.log('ERROR', message, **kwargs)

    def get_logs(
        self,
        level: Optional[Union[str, List[str]]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        **filters,
    ) -> List[Dict[str, Any]]:
        """
        Get log entries, oldest first.

        Args:
            level: Filter by level (string or list of strings)
            limit: Maximum number of entries to return
            offset: Number of entries to skip
            **filters: Additional filters (e.g., stage='compile')

        Returns:
            List of log entries (dictionaries)
        """
        entries = []

        # Rotated files hold older entries
        for log_file in sorted(self.log_dir.glob('log-*.tsv')) + [self.log_file]:
            if not log_file.exists():
                continue
            with open(log_file, 'r', newline='') as f:
                reader = csv.DictReader(f, delimiter='\t')
                entries.extend(
                    {k: v for k, v in row.items() if v != ''} for row in reader
                )

        if level is not None:
            if isinstance(level, str):
                level = [level]
            entries = [e for e in entries if e.get('level') in level]

        for key, value in filters.items():
            entries = [e for e in entries if e.get(key) == str(value)]

        if offset > 0:
            entries = entries[offset:]

        if limit is not None:
            entries = entries[:limit]

        return entries

    def _current_fieldnames(self, is_new_file: bool) -> List[str]:
        if is_new_file:
            return list(BASE_FIELDS)

        if self._header is not None and self.log_file.stat().st_size == self._header_size:
            return list(self._header)

        # Written by someone else since our last entry
        return self._get_fieldnames()

    def _get_fieldnames(self) -> List[str]:
        """Get existing fieldnames from log file"""
        if not self.log_file.exists():
            return list(BASE_FIELDS)

        with open(self.log_file, 'r', newline='') as f:
            reader = csv.DictReader(f, delimiter='\t')
            return list(reader.fieldnames or BASE_FIELDS)

    def _rewrite_with_fields(self, fieldnames: List[str]) -> None:
        with open(self.log_file, 'r', newline='') as f:
            rows = list(csv.DictReader(f, delimiter='\t'))

        with open(self.log_file, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, delimiter='\t')
            writer.writeheader()
            writer.writerows(rows)

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size"""
        if not self.log_file.exists():
            return

        if self.log_file.stat().st_size < self.max_log_size:
            return

        timestamp = datetime.now().strftime('%Y%m%d-%H%M%S-%f')
        self.log_file.rename(self.log_dir / f'log-{timestamp}.tsv')

        # Next log() call creates a new log.tsv with header


def _clean(value: Any) -> Any:
    # Tabs and newlines would break the TSV row
    if isinstance(value, str):
        return value.replace('\t', ' ').replace('\r', ' ').replace('\n', ' ')
    return value
