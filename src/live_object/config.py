"""
Configuration loader

Reads live_object.tsv (key/value rows) to get defaults for new caches.
Falls back to built-in defaults if the config file doesn't exist.
"""

import csv
from pathlib import Path
from typing import Any, Dict, Optional

from .core.self_logger import DEFAULT_MAX_LOG_SIZE


DEFAULT_CONFIG_FILE = 'live_object.tsv'

DEFAULTS = {
    'base_dir': '',
    'encoding': 'utf-8',
    'thread_safe': 'false',
    'max_log_size': str(DEFAULT_MAX_LOG_SIZE),
}

_TRUE = {'1', 'true', 'yes', 'on'}
_FALSE = {'0', 'false', 'no', 'off', ''}


class ConfigError(ValueError):
    """Raised when a config value can't be parsed"""
    pass


class LiveObjectConfig:
    """Load and manage live object configuration"""

    def __init__(self, config_file: Path | str = DEFAULT_CONFIG_FILE):
        self.config_file = Path(config_file)
        self.values: Dict[str, str] = dict(DEFAULTS)
        self._load()

    def _load(self):
        """Load configuration from TSV file"""
        if not self.config_file.exists():
            return

        with open(self.config_file, 'r', encoding='utf-8') as f:
            reader = csv.DictReader(
                (line for line in f if not line.startswith('#')),
                delimiter='\t'
            )

            for row in reader:
                key = (row.get('key') or '').strip()
                if not key:
                    continue
                self.values[key] = (row.get('value') or '').strip()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw config value"""
        return self.values.get(key, default)

    @property
    def base_dir(self) -> Optional[Path]:
        """Self-log directory, or None when logging is off"""
        value = self.values.get('base_dir', '')
        return Path(value) if value else None

    @property
    def encoding(self) -> str:
        return self.values.get('encoding') or 'utf-8'

    @property
    def thread_safe(self) -> bool:
        value = self.values.get('thread_safe', '').lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise ConfigError(f"thread_safe must be a boolean, got '{value}'")

    @property
    def max_log_size(self) -> int:
        value = self.values.get('max_log_size', '')
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"max_log_size must be an integer, got '{value}'")


# Global instance (lazy loaded)
_config = None


def get_config() -> LiveObjectConfig:
    """Get the global configuration"""
    global _config
    if _config is None:
        _config = LiveObjectConfig()
    return _config


def reload_config(config_file: Path | str = DEFAULT_CONFIG_FILE) -> LiveObjectConfig:
    """Reload configuration from file"""
    global _config
    _config = LiveObjectConfig(config_file)
    return _config
