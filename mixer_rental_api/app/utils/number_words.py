"""
Spell out rupee amounts using the Indian numbering system.

``number_to_words(150000)`` returns ``"One Lakh Fifty Thousand Rupees"``.
The integer amount is split into crore (10^7), lakh (10^5), thousand,
hundred and remainder groups; each group below one hundred is mapped
to words through the ones/teens/tens tables.  Amounts of a hundred
crore or more spell the crore count recursively ("One Hundred Crore").
"""

import math


ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
]
TEENS = [
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen",
    "Sixteen", "Seventeen", "Eighteen", "Nineteen",
]
TENS = [
    "", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety",
]

CRORE = 10_000_000
LAKH = 100_000
THOUSAND = 1_000
HUNDRED = 100


def _two_digits(n: int) -> str:
    if n < 10:
        return ONES[n]
    if n < 20:
        return TEENS[n - 10]
    tens, ones = divmod(n, 10)
    return f"{TENS[tens]} {ONES[ones]}".strip()


def _group_words(n: int) -> list[str]:
    words: list[str] = []
    crore, n = divmod(n, CRORE)
    lakh, n = divmod(n, LAKH)
    thousand, n = divmod(n, THOUSAND)
    hundred, rest = divmod(n, HUNDRED)
    if crore:
        words.extend(_group_words(crore))
        words.append("Crore")
    if lakh:
        words.extend([_two_digits(lakh), "Lakh"])
    if thousand:
        words.extend([_two_digits(thousand), "Thousand"])
    if hundred:
        words.extend([ONES[hundred], "Hundred"])
    if rest:
        words.append(_two_digits(rest))
    return words


def number_to_words(amount: float) -> str:
    """Return ``amount`` (rounded to whole rupees) spelled out in words.

    Negative amounts are prefixed with "Minus"; zero is "Zero Rupees".
    """
    value = math.floor(amount + 0.5)
    if value == 0:
        return "Zero Rupees"
    prefix = ""
    if value < 0:
        prefix = "Minus "
        value = -value
    return prefix + " ".join(_group_words(value)) + " Rupees"
