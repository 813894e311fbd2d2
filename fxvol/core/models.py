"""Data model for the volatility import."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

# Fixed MX3 tenor grid, in fetch and export order
TENORS = ("ON", "1W", "2W", "1M", "2M", "3M", "6M", "1Y", "2Y", "3Y")


def display_tenor(tenor: str) -> str:
    """MX3 writes overnight as O/N; every other tenor goes out verbatim."""
    return "O/N" if tenor == "ON" else tenor


@dataclass
class CurrencyPairEntry:
    """A tradable pair with its Bloomberg sources."""
    symbol: str                 # MX3 (canonical) symbol, e.g. 'EURSEK'
    atm_source: str = "BGN"
    smile_source: str = "BGN"
    is_live: bool = True

    def __post_init__(self):
        self.symbol = self.symbol.strip().upper()


@dataclass
class VolatilityPoint:
    """One (pair, tenor) row of the volatility grid."""
    pair: str
    tenor: str
    atm_bid: float = 0.0
    atm_ask: float = 0.0
    rr_25d: float = 0.0
    rr_10d: float = 0.0
    bf_25d: float = 0.0
    bf_10d: float = 0.0


class ExportKind(Enum):
    """The two MX3 artifacts, tracked independently."""
    ATM = "ATM"
    SMILE = "Smile"

    @property
    def label(self) -> str:
        return self.value


class PendingState(Enum):
    IDLE = "idle"
    AWAITING_CONSUMPTION = "awaiting_consumption"
    RECENTLY_COMPLETED = "recently_completed"


@dataclass
class AppSettings:
    """Persisted pair configuration."""
    currency_pairs: List[CurrencyPairEntry] = field(default_factory=list)
    last_saved: Optional[datetime] = None
