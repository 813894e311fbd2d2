"""Registry of tradable currency pairs and their Bloomberg sources."""

from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional
import logging

from .models import CurrencyPairEntry

logger = logging.getLogger(__name__)


class CurrencyPairRegistry:
    """
    The pairs with live positions, each with ATM/smile source and live flag.

    Kept sorted by symbol; symbols compare case-insensitively. Membership
    follows the positions feed, per-pair settings follow the persisted
    configuration.
    """

    def __init__(self, default_atm_source: str = "BGN", default_smile_source: str = "BGN"):
        self.default_atm_source = default_atm_source
        self.default_smile_source = default_smile_source
        self._entries: Dict[str, CurrencyPairEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CurrencyPairEntry]:
        return iter(self.entries)

    def __contains__(self, symbol: str) -> bool:
        return symbol.strip().upper() in self._entries

    @property
    def entries(self) -> List[CurrencyPairEntry]:
        return [self._entries[k] for k in sorted(self._entries)]

    @property
    def symbols(self) -> List[str]:
        return sorted(self._entries)

    def get(self, symbol: str) -> Optional[CurrencyPairEntry]:
        return self._entries.get(symbol.strip().upper())

    def load(self, entries: Iterable[CurrencyPairEntry]) -> None:
        """Replace the registry with persisted entries (last duplicate wins)."""
        self._entries = {e.symbol: replace(e) for e in entries}
        logger.info(f"Registry: Loaded {len(self._entries)} pairs from settings")

    def refresh(self, live_pairs: List[str],
                persisted: Iterable[CurrencyPairEntry] = ()) -> bool:
        """
        Align membership with the live pair universe.

        Pairs no longer live are dropped; new pairs take their persisted
        settings if any, else the defaults. An empty universe is treated as a
        failed read and leaves the registry as it is.

        Returns:
            True if membership changed
        """
        if not live_pairs:
            logger.warning("Registry: Empty live pair list, keeping current pairs")
            return False

        live = {p.strip().upper() for p in live_pairs}
        saved = {e.symbol: e for e in persisted}

        removed = [s for s in self._entries if s not in live]
        for symbol in removed:
            del self._entries[symbol]

        added = []
        for symbol in sorted(live):
            if symbol in self._entries:
                continue
            existing = saved.get(symbol)
            if existing is not None:
                self._entries[symbol] = replace(existing)
            else:
                self._entries[symbol] = CurrencyPairEntry(
                    symbol=symbol,
                    atm_source=self.default_atm_source,
                    smile_source=self.default_smile_source,
                    is_live=True,
                )
            added.append(symbol)

        if removed or added:
            logger.info(f"Registry: Added {added}, removed {removed}")
        return bool(removed or added)

    def update(self, symbol: str, atm_source: str = None, smile_source: str = None,
               is_live: bool = None) -> bool:
        """Change one pair's settings. Returns False for an unknown pair."""
        entry = self.get(symbol)
        if entry is None:
            logger.warning(f"Registry: Unknown pair {symbol}")
            return False

        if atm_source is not None:
            entry.atm_source = atm_source.strip().upper()
        if smile_source is not None:
            entry.smile_source = smile_source.strip().upper()
        if is_live is not None:
            entry.is_live = is_live
        return True

    def snapshot(self) -> List[CurrencyPairEntry]:
        """Copies of all entries, safe to hand to a worker thread."""
        return [replace(e) for e in self.entries]

    def live_entries(self) -> List[CurrencyPairEntry]:
        return [e for e in self.snapshot() if e.is_live]
