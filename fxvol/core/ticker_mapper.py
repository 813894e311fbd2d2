"""Currency pair conventions between MX3 and Bloomberg."""

import logging
from typing import Dict, Optional

from ..utils.config_loader import ConfigLoader

logger = logging.getLogger(__name__)


class TickerMapper:
    """
    Table-driven translation between MX3 (canonical) and Bloomberg (provider) pairs.

    A pair listed in the inversion table is quoted the other way round by
    Bloomberg, e.g. MX3 'CNHSEK' is Bloomberg 'SEKCNH'. Pairs not listed map
    to themselves. Lookups ignore case.
    """

    def __init__(self, inverted_pairs: Dict[str, str]):
        self._to_provider = {k.upper(): v.upper() for k, v in inverted_pairs.items()}
        self._to_canonical = {v: k for k, v in self._to_provider.items()}

    def to_provider_pair(self, canonical: str) -> str:
        return self._to_provider.get(canonical.upper(), canonical)

    def to_canonical_pair(self, provider_symbol: str) -> str:
        return self._to_canonical.get(provider_symbol.upper(), provider_symbol)

    def is_inverted(self, canonical: str) -> bool:
        return canonical.upper() in self._to_provider

    def adjust_risk_reversal(self, value: float, canonical: str) -> float:
        """
        Flip the risk reversal sign for inverted pairs.

        Must be applied once, at ingestion, with the canonical symbol.
        """
        return -value if self.is_inverted(canonical) else value

    def to_external_format(self, pair: str) -> str:
        """Render as 'XXX/YYY', always from the canonical form."""
        canonical = self.to_canonical_pair(pair).upper()
        return f"{canonical[:3]}/{canonical[3:6]}"


# Singleton instance
_ticker_mapper: Optional[TickerMapper] = None


def get_ticker_mapper() -> TickerMapper:
    """Get the process-wide mapper built from the configured inversion table."""
    global _ticker_mapper
    if _ticker_mapper is None:
        table = ConfigLoader().inverted_pairs
        logger.info(f"TickerMapper: {len(table)} inverted pair(s): {table}")
        _ticker_mapper = TickerMapper(table)
    return _ticker_mapper
