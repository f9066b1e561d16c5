import pytest

from kipubank.units import WEI_PER_ETHER, format_ether, parse_ether


def test_parse_ether_values():
    assert parse_ether("1.0") == WEI_PER_ETHER
    assert parse_ether("0.5") == WEI_PER_ETHER // 2
    assert parse_ether("1000") == 1000 * WEI_PER_ETHER
    assert parse_ether("0.000000000000000001") == 1
    assert parse_ether("123456789012.123456789012345678") == 123456789012123456789012345678


@pytest.mark.parametrize("bad", ["abc", "", "0.0000000000000000001", "NaN", True])
def test_parse_ether_rejects(bad):
    with pytest.raises(ValueError):
        parse_ether(bad)


def test_format_ether():
    assert format_ether(parse_ether("1000")) == "1000.0"
    assert format_ether(parse_ether("0.45")) == "0.45"
    assert format_ether(1) == "0.000000000000000001"
