"""Configuration loader utility."""

import os
import logging
import yaml
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_INVERTED_PAIRS = {
    'CNHSEK': 'SEKCNH',
}


class ConfigLoader:
    """Loads and manages application configuration."""

    _instance = None
    _config = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self.load_config()

    @staticmethod
    def _base_dir() -> str:
        return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

    def load_config(self, config_path: str = None) -> None:
        """Load configuration from YAML file. A missing file means all defaults."""
        if config_path is None:
            config_path = os.path.join(self._base_dir(), "config.yaml")

        if not os.path.exists(config_path):
            logger.warning(f"Config file not found: {config_path}, using defaults")
            self._config = {}
            return

        with open(config_path, 'r') as f:
            self._config = yaml.safe_load(f) or {}

    def _section(self, name: str) -> Dict[str, Any]:
        return self._config.get(name) or {}

    def _path(self, key: str, default: str) -> str:
        value = self._section('paths').get(key, default)
        value = os.path.expanduser(value)
        if not os.path.isabs(value):
            value = os.path.join(self._base_dir(), value)
        return os.path.normpath(value)

    @property
    def bloomberg_host(self) -> str:
        return self._section('bloomberg').get('host', 'localhost')

    @property
    def bloomberg_port(self) -> int:
        return self._section('bloomberg').get('port', 8194)

    @property
    def bloomberg_timeout(self) -> int:
        return self._section('bloomberg').get('timeout', 30000)

    @property
    def export_directory(self) -> str:
        return self._path('export_directory', './mx3_out/')

    @property
    def atm_file(self) -> str:
        return os.path.join(self.export_directory,
                            self._section('paths').get('atm_file', 'update_fxvols_ps.xml'))

    @property
    def smile_file(self) -> str:
        return os.path.join(self.export_directory,
                            self._section('paths').get('smile_file', 'update_fxvols_smile.xml'))

    @property
    def positions_file(self) -> str:
        return self._path('positions_file', './data/fxd_live_opt.csv')

    @property
    def settings_file(self) -> str:
        return self._path('settings_file', '~/.fxvol_import/settings.yaml')

    @property
    def default_atm_source(self) -> str:
        return self._section('defaults').get('atm_source', 'BGN')

    @property
    def default_smile_source(self) -> str:
        return self._section('defaults').get('smile_source', 'BGN')

    @property
    def inverted_pairs(self) -> Dict[str, str]:
        table = self._config.get('inverted_pairs')
        if table is None:
            return dict(DEFAULT_INVERTED_PAIRS)
        return {str(k).upper(): str(v).upper() for k, v in table.items()}

    @property
    def auto_import(self) -> bool:
        return self._section('schedule').get('enabled', True)

    @property
    def schedule_minute(self) -> int:
        return self._section('schedule').get('minute', 15)

    @property
    def schedule_first_hour(self) -> int:
        return self._section('schedule').get('first_hour', 8)

    @property
    def schedule_last_hour(self) -> int:
        return self._section('schedule').get('last_hour', 16)

    @property
    def tick_ms(self) -> int:
        return self._section('timing').get('tick_ms', 1000)

    @property
    def positions_poll_every(self) -> int:
        return self._section('timing').get('positions_poll_every', 5)

    @property
    def completion_display_ms(self) -> int:
        return self._section('timing').get('completion_display_ms', 5000)

    @property
    def positions_settle_poll_ms(self) -> int:
        return self._section('timing').get('positions_settle_poll_ms', 500)

    @property
    def positions_settle_push_ms(self) -> int:
        return self._section('timing').get('positions_settle_push_ms', 1000)

    @property
    def log_directory(self) -> str:
        value = self._section('logging').get('directory', './logs/')
        return os.path.normpath(os.path.join(self._base_dir(), value))

    @property
    def log_level(self) -> str:
        return self._section('logging').get('level', 'INFO')

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by key path (dot notation)."""
        keys = key.split('.')
        value = self._config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
        return value if value is not None else default
