"""Persistence of the per-pair configuration."""

import os
import logging
import yaml
from datetime import datetime

from ..utils.config_loader import ConfigLoader
from .models import AppSettings, CurrencyPairEntry

logger = logging.getLogger(__name__)


class SettingsStore:
    """Loads and saves AppSettings as YAML."""

    def __init__(self, filepath: str = None):
        self.filepath = filepath or ConfigLoader().settings_file

    def load(self) -> AppSettings:
        """Load settings; a missing or unreadable file gives empty settings."""
        if not os.path.exists(self.filepath):
            return AppSettings()

        try:
            with open(self.filepath, 'r') as f:
                raw = yaml.safe_load(f) or {}

            pairs = []
            for item in raw.get('currency_pairs') or []:
                pairs.append(CurrencyPairEntry(
                    symbol=str(item['currency_pair']),
                    atm_source=str(item.get('atm_source', 'BGN')),
                    smile_source=str(item.get('smile_source', 'BGN')),
                    is_live=bool(item.get('is_live', True)),
                ))

            last_saved = raw.get('last_saved')
            if isinstance(last_saved, str):
                last_saved = datetime.fromisoformat(last_saved)

            return AppSettings(currency_pairs=pairs, last_saved=last_saved)

        except Exception as e:
            logger.error(f"Error loading settings {self.filepath}: {type(e).__name__}: {e}")
            return AppSettings()

    def save(self, settings: AppSettings) -> bool:
        """
        Save settings, stamping last_saved.

        Returns:
            True if successful
        """
        settings.last_saved = datetime.now()

        data = {
            'last_saved': settings.last_saved.isoformat(timespec='seconds'),
            'currency_pairs': [
                {
                    'currency_pair': p.symbol,
                    'atm_source': p.atm_source,
                    'smile_source': p.smile_source,
                    'is_live': p.is_live,
                }
                for p in settings.currency_pairs
            ],
        }

        try:
            directory = os.path.dirname(self.filepath)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.filepath, 'w') as f:
                yaml.safe_dump(data, f, sort_keys=False)
            logger.debug(f"Saved {len(settings.currency_pairs)} pairs to {self.filepath}")
            return True

        except Exception as e:
            logger.error(f"Error saving settings {self.filepath}: {type(e).__name__}: {e}")
            return False
