"""Market data gateway interface."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class MarketDataGateway(ABC):
    """Batched reference-data access to the market-data provider."""

    @abstractmethod
    def connect(self) -> bool:
        """Open the session. Returns False on any failure, never raises."""

    @abstractmethod
    def disconnect(self) -> None:
        """Release the session. Safe to call repeatedly or with no session."""

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def fetch_reference_data(self, identifiers: List[str],
                             fields: List[str]) -> Dict[str, Dict[str, str]]:
        """
        Fetch fields for all identifiers in one batched request.

        Returns {identifier: {field: raw string value}}. Identifiers or fields
        the provider did not return are simply absent.
        """


def parse_value(raw: Optional[str]) -> float:
    """Parse a raw provider value; missing or unparsable values become 0."""
    if raw is None:
        return 0.0
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


def get_value(data: Dict[str, Dict[str, str]], identifier: str, field: str) -> float:
    """Look up and parse one value from a fetch result."""
    return parse_value(data.get(identifier, {}).get(field))
