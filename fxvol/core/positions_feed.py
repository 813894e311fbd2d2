"""Live positions feed: the MX3 export of open FX option positions."""

import pandas as pd
from datetime import datetime
from typing import List, Optional
import logging
import os

from ..utils.config_loader import ConfigLoader
from .ticker_mapper import TickerMapper

logger = logging.getLogger(__name__)

PAIR_COLUMN = 'curr_pair'
TYPOLOGY_COLUMN = 'typology'
EXCLUDED_TYPOLOGY = 'fx: spot forward'


class PositionsFeed:
    """
    Reads the semicolon-delimited live positions file.

    Expected columns (any order, any case):
    CURR_PAIR, TYPOLOGY
    """

    def __init__(self, mapper: TickerMapper, filepath: str = None):
        self.mapper = mapper
        self.filepath = filepath or ConfigLoader().positions_file

    def read_live_pairs(self) -> List[str]:
        """
        Return the sorted, de-duplicated MX3 pairs with live option positions.

        Spot/forward rows are ignored. Any read problem yields an empty list.
        """
        if not os.path.exists(self.filepath):
            logger.warning(f"Positions file not found: {self.filepath}")
            return []

        try:
            df = pd.read_csv(self.filepath, sep=';', dtype=str, keep_default_na=False)
        except Exception as e:
            logger.error(f"Error loading positions file {self.filepath}: {type(e).__name__}: {e}")
            return []

        # Normalize column names
        df.columns = [str(col).strip().lower() for col in df.columns]

        missing = [c for c in (PAIR_COLUMN, TYPOLOGY_COLUMN) if c not in df.columns]
        if missing:
            logger.error(f"Positions file {self.filepath} is missing column(s): {missing}")
            return []

        typology = df[TYPOLOGY_COLUMN].str.strip().str.lower()
        raw_pairs = df.loc[typology != EXCLUDED_TYPOLOGY, PAIR_COLUMN].str.strip()

        pairs = set()
        for raw in raw_pairs:
            symbol = raw.replace('/', '').upper()
            if symbol:
                pairs.add(self.mapper.to_canonical_pair(symbol))

        result = sorted(pairs)
        logger.info(f"Found {len(result)} live pairs in {self.filepath}")
        return result

    def last_modified(self) -> Optional[datetime]:
        """Last write time of the positions file, or None if unavailable."""
        try:
            return datetime.fromtimestamp(os.path.getmtime(self.filepath))
        except OSError:
            return None
