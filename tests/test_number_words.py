"""
Tests for the Indian-numbering amount-in-words converter.
"""

import pytest

from mixer_rental_api.app.utils.number_words import number_to_words


@pytest.mark.parametrize(
    "amount,expected",
    [
        (100, "One Hundred Rupees"),
        (150000, "One Lakh Fifty Thousand Rupees"),
        (99999, "Ninety Nine Thousand Nine Hundred Ninety Nine Rupees"),
        (100000, "One Lakh Rupees"),
        (9999999, "Ninety Nine Lakh Ninety Nine Thousand Nine Hundred Ninety Nine Rupees"),
        (10000000, "One Crore Rupees"),
        (0, "Zero Rupees"),
        (15, "Fifteen Rupees"),
        (472, "Four Hundred Seventy Two Rupees"),
    ],
)
def test_number_to_words(amount, expected):
    assert number_to_words(amount) == expected


def test_rounds_to_whole_rupees():
    assert number_to_words(235.5) == "Two Hundred Thirty Six Rupees"
    assert number_to_words(235.49) == "Two Hundred Thirty Five Rupees"


def test_large_crore_count_is_spelled_recursively():
    assert number_to_words(1_000_000_000) == "One Hundred Crore Rupees"


def test_negative_amount():
    assert number_to_words(-100) == "Minus One Hundred Rupees"
