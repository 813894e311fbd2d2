"""MX3 XML export of the volatility grid."""

import os
import logging
import tempfile
import xml.etree.ElementTree as ET
from collections import OrderedDict
from datetime import date
from typing import Dict, List

from ..utils.config_loader import ConfigLoader
from .models import ExportKind, VolatilityPoint, display_tenor
from .ticker_mapper import TickerMapper

logger = logging.getLogger(__name__)

NS_XC = "XmlCache"
NS_MP = "mx.MarketParameters"
NS_FX_ATM = "mx.MarketParameters.Forex"
NS_FXVL = "mx.MarketParameters.Forex.Volatilities"
NS_FX_SMILE = "mx.MarketParameters.Rates"
NS_FXSM = "mx.MarketParameters.Rates.Smile"

# Smile ordinates, in document order
SMILE_ORDINATES = (
    ("10.000000000", "rr_10d", "bf_10d"),
    ("25.000000000", "rr_25d", "bf_25d"),
)


def format_value(value: float) -> str:
    text = f"{value:.3f}"
    return "0.000" if text == "-0.000" else text


def group_by_pair(points: List[VolatilityPoint]) -> Dict[str, List[VolatilityPoint]]:
    """Group points by pair in order of first appearance, keeping input order."""
    grouped: Dict[str, List[VolatilityPoint]] = OrderedDict()
    for point in points:
        grouped.setdefault(point.pair, []).append(point)
    return grouped


class ExportFormatter:
    """
    Serializes the volatility grid into the two MX3 market-data update files.

    Element names carry literal prefixes with the namespace declared on the
    first element using it, which is the layout MX3's XmlCache loader reads.
    """

    def __init__(self, mapper: TickerMapper, atm_path: str = None, smile_path: str = None):
        config = ConfigLoader() if atm_path is None or smile_path is None else None
        self.mapper = mapper
        self.atm_path = atm_path or config.atm_file
        self.smile_path = smile_path or config.smile_file

    def path_for(self, kind: ExportKind) -> str:
        return self.atm_path if kind is ExportKind.ATM else self.smile_path

    def _envelope(self, as_of: date, forex_ns: str) -> tuple:
        root = ET.Element("xc:XmlCache", {"xc:action": "Update", "xmlns:xc": NS_XC})
        area = ET.SubElement(root, "xc:XmlCacheArea", {"xc:value": "MarketParameters"})
        nick = ET.SubElement(area, "mp:nickName", {"xc:value": "FO", "xmlns:mp": NS_MP})
        date_node = ET.SubElement(nick, "mp:date", {"xc:value": as_of.strftime("%Y%m%d")})
        forex = ET.SubElement(date_node, "fx:forex", {"xmlns:fx": forex_ns})
        return root, forex

    def build_atm_document(self, points: List[VolatilityPoint], as_of: date = None) -> ET.ElementTree:
        root, forex = self._envelope(as_of or date.today(), NS_FX_ATM)
        volatility = ET.SubElement(forex, "fxvl:volatility", {"xmlns:fxvl": NS_FXVL})

        for pair, tenors in group_by_pair(points).items():
            pair_node = ET.SubElement(volatility, "fxvl:pair",
                                      {"xc:value": self.mapper.to_external_format(pair)})
            for point in tenors:
                maturity = ET.SubElement(pair_node, "fxvl:maturity",
                                         {"xc:value": display_tenor(point.tenor)})
                ET.SubElement(maturity, "mp:bid").text = format_value(point.atm_bid)
                ET.SubElement(maturity, "mp:ask").text = format_value(point.atm_ask)

        return ET.ElementTree(root)

    def build_smile_document(self, points: List[VolatilityPoint], as_of: date = None) -> ET.ElementTree:
        root, forex = self._envelope(as_of or date.today(), NS_FX_SMILE)
        smile = ET.SubElement(forex, "fxsm:smile", {"xmlns:fxsm": NS_FXSM})

        for pair, tenors in group_by_pair(points).items():
            pair_node = ET.SubElement(smile, "fxsm:pair",
                                      {"xc:value": self.mapper.to_external_format(pair)})
            for point in tenors:
                maturity = ET.SubElement(pair_node, "fxsm:maturity",
                                         {"xc:value": display_tenor(point.tenor)})
                # Risk reversals were sign-adjusted at ingestion
                for delta, rr_attr, bf_attr in SMILE_ORDINATES:
                    self._add_ordinate(maturity, delta,
                                       format_value(getattr(point, rr_attr)),
                                       format_value(getattr(point, bf_attr)))

        return ET.ElementTree(root)

    @staticmethod
    def _add_ordinate(parent: ET.Element, delta: str, rr: str, bf: str) -> None:
        ordinate = ET.SubElement(parent, "fxsm:ordinate", {"xc:value": delta, "xc:type": "Fields"})
        # The feed only has mids, so ask and bid carry the same value
        for name, value in (("fxrrAsk", rr), ("fxrrBid", rr), ("fxstrAsk", bf), ("fxstrBid", bf)):
            node = ET.SubElement(ordinate, f"mp:{name}",
                                 {"xc:keyFormat": "N", "xc:userID": "13", "xc:type": "Field"})
            node.text = value

    def export_atm(self, points: List[VolatilityPoint], as_of: date = None) -> str:
        return self._write(self.build_atm_document(points, as_of), self.atm_path)

    def export_smile(self, points: List[VolatilityPoint], as_of: date = None) -> str:
        return self._write(self.build_smile_document(points, as_of), self.smile_path)

    def export(self, kind: ExportKind, points: List[VolatilityPoint], as_of: date = None) -> str:
        if kind is ExportKind.ATM:
            return self.export_atm(points, as_of)
        return self.export_smile(points, as_of)

    @staticmethod
    def _write(tree: ET.ElementTree, path: str) -> str:
        """Write atomically: MX3 must never pick up a half-written file."""
        ET.indent(tree, space="  ")
        directory = os.path.dirname(path) or "."
        fd, tmp_path = tempfile.mkstemp(prefix=".fxvol_", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "wb") as f:
                tree.write(f, encoding="utf-8", xml_declaration=True)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.info(f"MX3: Wrote {path}")
        return path
