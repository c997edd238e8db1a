import pytest

from services.errors import ValidationError
from services.reference_data import StaticReferenceData, get_reference_data, normalize_symbol


@pytest.mark.parametrize("symbol,exchange", [
    ("CBA.AX", "ASX"),
    ("VOD.L", "LSE"),
    ("0700.HK", "HKEX"),
    ("FOO.ZZ", "ZZ"),
    ("AAPL", "NASDAQ"),
    ("jpm", "NYSE"),
])
def test_exchange_rules(symbol, exchange):
    assert StaticReferenceData().get_exchange(symbol) == exchange


def test_sector_and_industry_default_to_other():
    ref = StaticReferenceData()
    assert ref.get_sector("bhp.ax") == "Materials"
    assert ref.get_sector("NOPE") == "Other"
    assert ref.get_industry("NOPE") == "Other"


def test_base_metrics_are_copies():
    ref = StaticReferenceData()
    metrics = ref.get_base_metrics("AAPL")
    metrics["trailingPE"] = 0
    assert ref.get_base_metrics("AAPL")["trailingPE"] == 35.2
    assert ref.get_base_metrics("NOPE") is None


def test_provider_factory():
    assert isinstance(get_reference_data("static"), StaticReferenceData)
    with pytest.raises(ValueError):
        get_reference_data("bloomberg")


def test_normalize_symbol():
    assert normalize_symbol("  cba.ax ") == "CBA.AX"
    for blank in (None, "", "   "):
        with pytest.raises(ValidationError):
            normalize_symbol(blank)
