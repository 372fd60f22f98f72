"""
dashboard/app/utils/formatting.py

Display helpers for appointment identifiers and amounts.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

_NUMBER_PREFIX = re.compile(r"^(RV-|APP-)", re.IGNORECASE)

CURRENCY_SYMBOLS = {
    "TRY": "₺",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def format_appointment_number(public_number: Optional[str | int], country: str = "TR") -> str:
    """
    Format the public number shown to end users.

    - ("1", "TR")      → "#RV-001"
    - ("APP-42", "US") → "#APP-042"
    - None             → ""
    """
    if public_number is None or public_number == "":
        return ""

    raw = _NUMBER_PREFIX.sub("", str(public_number))
    prefix = "RV" if country.upper() == "TR" else "APP"
    return f"#{prefix}-{raw.zfill(3)}"


def currency_symbol(currency: str = "TRY") -> str:
    return CURRENCY_SYMBOLS.get(currency.upper(), "₺")


def format_amount(amount: Optional[Decimal | float | str], currency: str = "TRY") -> str:
    """Format an amount as "<symbol><value>" with two decimals. Empty for None."""
    if amount is None:
        return ""
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        return ""
    return f"{currency_symbol(currency)}{value:.2f}"
