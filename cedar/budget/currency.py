"""
Currency Normalization

All aggregation happens in a single reference currency (USD).

DESIGN DECISION: The LBP rate is a fixed process-wide constant. It is not
fetched, not user-editable and not part of the settings, so two summaries
of the same transactions can never disagree.

Lollar (dollars trapped in the local banking system) trades below face
value in reality, but is normalized 1:1 here on purpose.
"""

from cedar.models.transaction import Currency

LBP_TO_USD_RATE = 89500
"""Lebanese pounds per reference dollar."""

REFERENCE_CURRENCY = "USD"


def normalize(amount: float, currency: Currency) -> float:
    """Convert an amount in `currency` to reference dollars."""
    if currency == Currency.LBP:
        return amount / LBP_TO_USD_RATE
    return float(amount)


def to_lbp(usd_amount: float) -> float:
    """Convert reference dollars back to pounds, for display."""
    return usd_amount * LBP_TO_USD_RATE


def _plain_number(amount: float) -> str:
    """Thousands separators, up to 3 decimals, no trailing zeros."""
    text = f"{amount:,.3f}".rstrip("0").rstrip(".")
    return text or "0"


def format_usd(amount: float) -> str:
    """
    Format a reference amount for display.

    >>> format_usd(1234.5)
    '$1,234.50'
    >>> format_usd(-12)
    '-$12.00'
    """
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_lbp(usd_amount: float) -> str:
    """
    Format the LBP equivalent of a reference amount, whole pounds only.

    >>> format_lbp(1.0)
    'LBP 89,500'
    """
    return f"LBP {to_lbp(usd_amount):,.0f}"


def describe_amount(amount: float, currency: Currency) -> str:
    """
    Describe an amount in its own currency.

    LBP amounts carry their dollar equivalent, dollar amounts do not.

    >>> describe_amount(895000, Currency.LBP)
    '895,000 LBP ($10.00 USD)'
    >>> describe_amount(1000, Currency.FRESH_USD)
    '1,000 Fresh USD'
    """
    text = f"{_plain_number(amount)} {currency.value}"
    if currency == Currency.LBP:
        text += f" (${normalize(amount, currency):,.2f} {REFERENCE_CURRENCY})"
    return text
