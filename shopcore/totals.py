# shopcore/totals.py
import os
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from .models import CartLine, CartTotals

TAX_RATE = Decimal(os.getenv("TAX_RATE", "0.05"))
CENT = Decimal("0.01")


def subtotal(lines: Iterable[CartLine]) -> Decimal:
    """Sum of price_at_add * quantity over the given lines."""
    total = Decimal("0")
    for line in lines:
        total += line.price_at_add * line.quantity
    return total


def tax_amount(amount: Decimal, rate: Decimal = TAX_RATE) -> Decimal:
    return (amount * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_totals(lines: Iterable[CartLine], rate: Decimal = TAX_RATE) -> CartTotals:
    """
    Totals are always derived from the lines passed in; nothing here is
    cached, so they cannot drift from the cart contents.
    """
    sub = subtotal(lines)
    return CartTotals(subtotal=sub, tax=tax_amount(sub, rate))
