"""Tests for the MX3 XML documents and their atomic write."""
import os
import xml.etree.ElementTree as ET
from datetime import date

from fxvol.core.models import ExportKind
from fxvol.core.mx3_export import ExportFormatter, format_value, group_by_pair

AS_OF = date(2024, 5, 6)


def children(element, tag):
    return [c for c in element if c.tag == tag]


def child(element, *tags):
    """Walk down literal prefixed tags, first match at each level."""
    for tag in tags:
        element = children(element, tag)[0]
    return element


def make_formatter(mapper, tmp_path):
    return ExportFormatter(mapper, str(tmp_path / "update_fxvols_ps.xml"),
                           str(tmp_path / "update_fxvols_smile.xml"))


def test_format_value_three_decimals_without_negative_zero():
    assert format_value(1.2344) == "1.234"
    assert format_value(1.567) == "1.567"
    assert format_value(-0.0001) == "0.000"
    assert format_value(-0.25) == "-0.250"


def test_group_by_pair_keeps_first_appearance_order(sample_points):
    grouped = group_by_pair(sample_points)
    assert list(grouped) == ["EURSEK", "CNHSEK"]
    assert [p.tenor for p in grouped["EURSEK"]] == ["ON", "1W"]


def test_atm_document_envelope(mapper, tmp_path, sample_points):
    root = make_formatter(mapper, tmp_path).build_atm_document(sample_points, AS_OF).getroot()

    assert root.tag == "xc:XmlCache"
    assert root.get("xc:action") == "Update"
    assert root.get("xmlns:xc") == "XmlCache"

    area = child(root, "xc:XmlCacheArea")
    assert area.get("xc:value") == "MarketParameters"
    nick = child(area, "mp:nickName")
    assert nick.get("xc:value") == "FO"
    assert child(nick, "mp:date").get("xc:value") == "20240506"
    forex = child(nick, "mp:date", "fx:forex")
    assert forex.get("xmlns:fx") == "mx.MarketParameters.Forex"


def test_atm_document_pair_and_tenor_values(mapper, tmp_path, sample_points):
    root = make_formatter(mapper, tmp_path).build_atm_document(sample_points, AS_OF).getroot()

    pairs = list(root.iter("fxvl:pair"))
    assert [p.get("xc:value") for p in pairs] == ["EUR/SEK", "CNH/SEK"]

    overnight = child(pairs[0], "fxvl:maturity")
    assert overnight.get("xc:value") == "O/N"
    assert child(overnight, "mp:bid").text == "1.234"
    assert child(overnight, "mp:ask").text == "1.567"
    assert [m.get("xc:value") for m in children(pairs[0], "fxvl:maturity")] == ["O/N", "1W"]


def test_smile_document_ordinates(mapper, tmp_path, sample_points):
    root = make_formatter(mapper, tmp_path).build_smile_document(sample_points, AS_OF).getroot()

    assert child(root, "xc:XmlCacheArea", "mp:nickName", "mp:date", "fx:forex").get("xmlns:fx") == \
        "mx.MarketParameters.Rates"

    maturity = next(root.iter("fxsm:maturity"))
    ordinates = children(maturity, "fxsm:ordinate")
    assert [o.get("xc:value") for o in ordinates] == ["10.000000000", "25.000000000"]
    assert all(o.get("xc:type") == "Fields" for o in ordinates)

    ten_delta = ordinates[0]
    assert [c.tag for c in ten_delta] == ["mp:fxrrAsk", "mp:fxrrBid", "mp:fxstrAsk", "mp:fxstrBid"]
    assert [c.text for c in ten_delta] == ["0.500", "0.500", "0.300", "0.300"]
    assert ten_delta[0].get("xc:keyFormat") == "N"
    assert ten_delta[0].get("xc:userID") == "13"
    assert ten_delta[0].get("xc:type") == "Field"

    twenty_five = ordinates[1]
    assert [c.text for c in twenty_five] == ["0.250", "0.250", "0.100", "0.100"]


def test_smile_document_does_not_flip_risk_reversals_again(mapper, tmp_path, sample_points):
    root = make_formatter(mapper, tmp_path).build_smile_document(sample_points, AS_OF).getroot()

    cnh = [p for p in root.iter("fxsm:pair") if p.get("xc:value") == "CNH/SEK"][0]
    ten_delta = child(cnh, "fxsm:maturity", "fxsm:ordinate")
    assert child(ten_delta, "mp:fxrrAsk").text == "-2.000"


def test_export_writes_well_formed_file(mapper, tmp_path, sample_points):
    formatter = make_formatter(mapper, tmp_path)

    path = formatter.export(ExportKind.ATM, sample_points, AS_OF)

    assert path == formatter.atm_path
    content = open(path, "rb").read()
    assert content.startswith(b"<?xml")
    parsed = ET.fromstring(content)
    assert parsed.tag == "{XmlCache}XmlCache"
    pair = next(parsed.iter("{mx.MarketParameters.Forex.Volatilities}pair"))
    assert pair.get("{XmlCache}value") == "EUR/SEK"


def test_export_replaces_existing_file_without_leftovers(mapper, tmp_path, sample_points):
    formatter = make_formatter(mapper, tmp_path)
    with open(formatter.smile_path, "w") as f:
        f.write("stale")

    formatter.export(ExportKind.SMILE, sample_points, AS_OF)

    assert b"fxsm:smile" in open(formatter.smile_path, "rb").read()
    assert sorted(os.listdir(tmp_path)) == ["update_fxvols_smile.xml"]


def test_empty_grid_still_produces_envelope(mapper, tmp_path):
    formatter = make_formatter(mapper, tmp_path)
    root = formatter.build_atm_document([], AS_OF).getroot()
    volatility = child(root, "xc:XmlCacheArea", "mp:nickName", "mp:date", "fx:forex", "fxvl:volatility")
    assert len(volatility) == 0
    assert list(root.iter("fxvl:pair")) == []


def test_path_for(mapper, tmp_path):
    formatter = make_formatter(mapper, tmp_path)
    assert formatter.path_for(ExportKind.ATM).endswith("update_fxvols_ps.xml")
    assert formatter.path_for(ExportKind.SMILE).endswith("update_fxvols_smile.xml")
