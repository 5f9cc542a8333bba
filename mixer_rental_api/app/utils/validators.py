"""Field validators and formatters shared by the services."""

import re
from typing import Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MOBILE_RE = re.compile(r"^[6-9]\d{9}$")
GST_RE = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")
MACHINE_NUMBER_RE = re.compile(r"^[A-Za-z0-9-]+$")


def digits_only(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value))


def is_valid_mobile(value: Optional[str]) -> bool:
    """Indian mobile number: ten digits starting with 6-9."""
    return bool(MOBILE_RE.match(digits_only(value)))


def is_valid_gst_number(value: Optional[str]) -> bool:
    return bool(value) and bool(GST_RE.match(value.upper()))


def format_currency(amount: float) -> str:
    """Format ``amount`` with Indian digit grouping, e.g. ``12,34,567.50``."""
    negative = amount < 0
    whole, fraction = f"{abs(amount):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    return f"{'-' if negative else ''}{whole}.{fraction}"


def format_phone_number(phone: Optional[str]) -> str:
    digits = digits_only(phone)
    if len(digits) == 10 and digits[0] in "6789":
        return f"+91-{digits[:5]}-{digits[5:]}"
    if len(digits) > 10:
        return f"+91-{digits}"
    return phone or ""
