import pytest

from modules.core.formatting import format_money

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "amount, expected",
    [
        (0, "Rp0"),
        (500, "Rp500"),
        (15000, "Rp15.000"),
        (1250000, "Rp1.250.000"),
    ],
)
def test_format_money(amount, expected):
    assert format_money(amount) == expected


def test_custom_currency():
    assert format_money(15000, "IDR ") == "IDR 15.000"
