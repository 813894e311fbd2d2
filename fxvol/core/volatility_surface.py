"""Volatility grid construction from Bloomberg reference data."""

from datetime import datetime
from typing import Iterable, List, Tuple
import logging

from .market_data_gateway import MarketDataGateway, get_value
from .models import TENORS, CurrencyPairEntry, VolatilityPoint
from .ticker_mapper import TickerMapper

logger = logging.getLogger(__name__)

ATM_FIELDS = ["PX_BID", "PX_ASK"]
SMILE_FIELDS = ["PX_MID"]

# Per tenor, in request order: 25D RR, 10D RR, 25D BF, 10D BF
SMILE_CODES = ("25R", "10R", "25B", "10B")


def atm_ticker(provider_pair: str, tenor: str, source: str) -> str:
    # e.g. EURSEKV1M BGN Curncy
    return f"{provider_pair}V{tenor} {source} Curncy"


def smile_ticker(provider_pair: str, code: str, tenor: str, source: str) -> str:
    # e.g. EURSEK25R1M BGN Curncy
    return f"{provider_pair}{code}{tenor} {source} Curncy"


class VolatilitySurfaceBuilder:
    """
    Builds the MX3 volatility grid for the live currency pairs.

    Issues exactly two batched requests: ATM bid/ask for every pair and tenor,
    then smile mids (25D/10D risk reversals and butterflies). Points come back
    pair-major, tenor-minor in the fixed tenor order, keyed by the MX3 symbol.
    Risk reversals of inverted pairs have their sign flipped here and nowhere
    else.
    """

    def __init__(self, gateway: MarketDataGateway, mapper: TickerMapper):
        self.gateway = gateway
        self.mapper = mapper

    def atm_identifiers(self, pairs: List[CurrencyPairEntry]) -> List[str]:
        return [atm_ticker(self.mapper.to_provider_pair(p.symbol), tenor, p.atm_source)
                for p in pairs for tenor in TENORS]

    def smile_identifiers(self, pairs: List[CurrencyPairEntry]) -> List[Tuple[str, str, str, str]]:
        """One (25R, 10R, 25B, 10B) ticker tuple per pair and tenor."""
        result = []
        for p in pairs:
            bbg_pair = self.mapper.to_provider_pair(p.symbol)
            for tenor in TENORS:
                result.append(tuple(smile_ticker(bbg_pair, code, tenor, p.smile_source)
                                    for code in SMILE_CODES))
        return result

    def build(self, entries: Iterable[CurrencyPairEntry]) -> List[VolatilityPoint]:
        live_pairs = [e for e in entries if e.is_live]
        if not live_pairs:
            logger.info("VolSurface: No live pairs, nothing to fetch")
            return []

        start_time = datetime.now()
        logger.info(f"VolSurface: Building grid for {len(live_pairs)} pairs x {len(TENORS)} tenors")

        atm_tickers = self.atm_identifiers(live_pairs)
        atm_data = self.gateway.fetch_reference_data(atm_tickers, ATM_FIELDS)

        smile_tickers = self.smile_identifiers(live_pairs)
        flat_smile = [ticker for group in smile_tickers for ticker in group]
        smile_data = self.gateway.fetch_reference_data(flat_smile, SMILE_FIELDS)

        points: List[VolatilityPoint] = []
        idx = 0
        for pair in live_pairs:
            for tenor in TENORS:
                atm = atm_tickers[idx]
                rr25, rr10, bf25, bf10 = smile_tickers[idx]

                points.append(VolatilityPoint(
                    pair=pair.symbol,
                    tenor=tenor,
                    atm_bid=get_value(atm_data, atm, "PX_BID"),
                    atm_ask=get_value(atm_data, atm, "PX_ASK"),
                    rr_25d=self.mapper.adjust_risk_reversal(get_value(smile_data, rr25, "PX_MID"), pair.symbol),
                    rr_10d=self.mapper.adjust_risk_reversal(get_value(smile_data, rr10, "PX_MID"), pair.symbol),
                    bf_25d=get_value(smile_data, bf25, "PX_MID"),
                    bf_10d=get_value(smile_data, bf10, "PX_MID"),
                ))
                idx += 1

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(f"VolSurface: Built {len(points)} tenor points in {elapsed:.2f}s "
                    f"({len(atm_data)}/{len(atm_tickers)} ATM, "
                    f"{len(smile_data)}/{len(flat_smile)} smile securities returned)")
        return points
