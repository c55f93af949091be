from __future__ import annotations

import pytest

from modules.conversations.constants import PRODUCT_FORM, Step
from modules.conversations.exceptions import EmptyInput, NotANumber
from modules.conversations.forms import (
    is_cancel,
    next_form_step,
    parse_amount,
    require_text,
)
from shared.domain.exceptions import InvalidInput

pytestmark = pytest.mark.unit


class TestIsCancel:
    @pytest.mark.parametrize(
        "text", ["batal", "BATAL", "  Batal ", "cancel", "Cancel", "/cancel", "/batal"]
    )
    def test_cancel_words(self, text):
        assert is_cancel(text) is True

    @pytest.mark.parametrize("text", [None, "", "batalkan", "cancel order", "ok"])
    def test_other_text(self, text):
        assert is_cancel(text) is False


class TestParseAmount:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("15000", 15000),
            ("15.000", 15000),
            ("15,000", 15000),
            (" 1 500 000 ", 1500000),
            ("1.500.000", 1500000),
            ("0", 0),
            ("9" * 18, 999999999999999999),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_amount(text) == expected

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "abc",
            "-5",
            "12a",
            "1e3",
            "²",
            "١٢٣",
            "9" * 19,
            "9" * 5000,
            "1.5",
            "12,50",
            "1..000",
            "1.000,000",
            "1_000",
            ".500",
        ],
    )
    def test_invalid(self, text):
        with pytest.raises(NotANumber):
            parse_amount(text)

    def test_long_input_is_truncated_in_message(self):
        with pytest.raises(NotANumber) as excinfo:
            parse_amount("9" * 5000)
        assert len(str(excinfo.value)) < 100

    def test_not_a_number_is_invalid_input(self):
        assert issubclass(NotANumber, InvalidInput)


class TestRequireText:
    def test_strips(self):
        assert require_text("  Netflix  ") == "Netflix"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty(self, text):
        with pytest.raises(EmptyInput):
            require_text(text)


class TestNextFormStep:
    def test_walks_the_form_in_order(self):
        step = PRODUCT_FORM[0]
        visited = [step]
        while (step := next_form_step(step)) is not None:
            visited.append(step)
        assert tuple(visited) == PRODUCT_FORM

    def test_last_step_has_no_successor(self):
        assert next_form_step(Step.ADD_PRODUCT_STOCK) is None
