"""Unit tests for the Vietnamese amount-in-words converter."""

from __future__ import annotations

import math

import pytest

from warehouse_ledger import currency


def test_zero_amount_uses_literal():
    assert currency.amount_to_words(0) == currency.ZERO_AMOUNT_WORDS == "Không đồng"


def test_million_mentions_trieu_once():
    words = currency.amount_to_words(1_000_000)

    assert words == "Một triệu đồng"
    assert words.count("triệu") == 1


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (10, "Mười đồng"),
        (11, "Mười một đồng"),
        (15, "Mười lăm đồng"),
        (21, "Hai mươi mốt đồng"),
        (105, "Một trăm linh năm đồng"),
        (1_500_000, "Một triệu năm trăm nghìn đồng"),
        (2_000_005, "Hai triệu không trăm linh năm đồng"),
        (1_000_000_000, "Một tỷ đồng"),
        (1_000_000_000_000, "Một nghìn tỷ đồng"),
    ],
)
def test_amount_to_words_readings(amount, expected):
    assert currency.amount_to_words(amount) == expected


def test_amount_is_rounded_half_up():
    assert currency.amount_to_words(1234.5) == "Một nghìn hai trăm ba mươi lăm đồng"
    assert currency.amount_to_words(0.4) == "Không đồng"


def test_negative_amount_is_prefixed():
    assert currency.amount_to_words(-1500) == "Âm một nghìn năm trăm đồng"


@pytest.mark.parametrize("amount", [math.nan, math.inf, -math.inf])
def test_non_finite_amount_is_rejected(amount):
    with pytest.raises(ValueError):
        currency.amount_to_words(amount)


def test_read_group_handles_empty_and_round_hundreds():
    assert currency.read_group("000") == ""
    assert currency.read_group("100") == " một trăm"
    assert currency.read_group("015") == " không trăm mười lăm"
