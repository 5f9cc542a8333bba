"""
Line‑item and document totals for quotations.

Per item: ``amount = quantity * unit_price``, ``gst_amount = amount *
gst_percentage / 100`` and ``total_amount = amount + gst_amount``.  The
document subtotal is the sum of item amounts, total GST the sum of
item GST amounts and the grand total their sum.  Every figure is
rounded to two decimals.

``price_for_duration`` picks a machine's day/week/month rate, which is
how a machine line item gets its unit price when none is given.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Mapping, Optional

DURATION_TYPES = ("day", "week", "month")

_CENT = Decimal("0.01")


def round2(value: Any) -> float:
    """Round half up to two decimals (``1.005`` -> ``1.01``)."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ItemTotals:
    amount: float
    gst_amount: float
    total_amount: float


@dataclass(frozen=True)
class QuotationTotals:
    subtotal: float
    total_gst_amount: float
    grand_total: float
    items: List[ItemTotals]


def calculate_item(quantity: float, unit_price: float, gst_percentage: float) -> ItemTotals:
    amount = Decimal(str(quantity or 0)) * Decimal(str(unit_price or 0))
    gst = amount * Decimal(str(gst_percentage or 0)) / Decimal(100)
    return ItemTotals(
        amount=round2(amount),
        gst_amount=round2(gst),
        total_amount=round2(amount + gst),
    )


def calculate_totals(items: Iterable[Mapping[str, Any]]) -> QuotationTotals:
    """Compute per‑item and document totals.

    ``items`` are mappings with ``quantity``, ``unit_price`` and
    ``gst_percentage`` keys.
    """
    item_totals = [
        calculate_item(i.get("quantity", 0), i.get("unit_price", 0), i.get("gst_percentage", 0))
        for i in items
    ]
    subtotal = sum((Decimal(str(t.amount)) for t in item_totals), Decimal(0))
    total_gst = sum((Decimal(str(t.gst_amount)) for t in item_totals), Decimal(0))
    return QuotationTotals(
        subtotal=round2(subtotal),
        total_gst_amount=round2(total_gst),
        grand_total=round2(subtotal + total_gst),
        items=item_totals,
    )


def price_for_duration(machine: Mapping[str, Any], duration_type: Optional[str]) -> float:
    """Return the machine's rate for ``duration_type`` (day when unknown)."""
    if duration_type == "week":
        return float(machine.get("price_by_week") or 0)
    if duration_type == "month":
        return float(machine.get("price_by_month") or 0)
    return float(machine.get("price_by_day") or 0)
