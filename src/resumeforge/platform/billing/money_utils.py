"""
Money and currency utilities using py-moneyed and Babel.

Provides currency validation, decimal precision handling and the
currency-aware display format used for ledger amounts.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any

from babel.numbers import format_currency, get_currency_precision
from moneyed import Currency, Money, get_currency
from moneyed.classes import CurrencyDoesNotExist

from resumeforge.platform.billing.exceptions import UnsupportedCurrencyError

INR = Currency("INR")
USD = Currency("USD")

INDIAN_LOCALE = "en_IN"
TWO_PLACES = Decimal("0.01")


def to_decimal(amount: int | float | Decimal | str | None) -> Decimal:
    """Convert a stored or user supplied amount to Decimal."""
    if amount is None:
        return Decimal("0")
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


class MoneyHandler:
    """Central handler for money operations with proper error handling."""

    def __init__(self, default_currency: str = "USD") -> None:
        self.default_currency = self.validate_currency(default_currency)

    def validate_currency(self, currency_code: str) -> Currency:
        """Validate and return Currency object."""
        try:
            return get_currency(currency_code.strip().upper())
        except CurrencyDoesNotExist:
            raise UnsupportedCurrencyError(
                f"Invalid currency code: {currency_code}", currency=currency_code
            )

    def create_money(
        self, amount: int | float | Decimal | str, currency: str | None = None
    ) -> Money:
        """Create Money object with proper validation."""
        currency = currency or self.default_currency.code
        return Money(amount=to_decimal(amount), currency=self.validate_currency(currency))

    def get_currency_precision(self, currency_code: str) -> int:
        """Get decimal precision for a currency."""
        return get_currency_precision(currency_code.upper())

    def round_money(self, money: Money) -> Money:
        """Round Money to proper currency precision."""
        precision = self.get_currency_precision(money.currency.code)
        rounded_amount = money.amount.quantize(Decimal("0.1") ** precision, rounding=ROUND_HALF_UP)
        return Money(amount=rounded_amount, currency=money.currency)

    def to_dict(self, money: Money) -> dict[str, Any]:
        """Convert Money to dictionary for serialization."""
        return {"amount": str(money.amount), "currency": money.currency.code}


def round_amount(amount: Decimal) -> Decimal:
    """Round a monetary value to two places, half up."""
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_transaction_amount(amount: int | float | Decimal | str | None, currency: str) -> str:
    """
    Render a transaction amount for display.

    INR uses Indian digit grouping with the rupee glyph, truncating to two
    decimals; USD uses a dollar glyph with two fixed decimals; any other
    currency renders as ``<amount> <CODE>``. Zero always renders as ``0.00``.

    Args:
        amount: Stored amount
        currency: ISO currency code of the amount

    Returns:
        Display string
    """
    value = to_decimal(amount)
    code = (currency or "").upper()

    if value == 0:
        if code == "INR":
            return "₹0.00"
        if code == "USD":
            return "$0.00"
        return f"0.00 {code}"

    if code == "INR":
        truncated = value.quantize(TWO_PLACES, rounding=ROUND_DOWN)
        return format_currency(truncated, "INR", locale=INDIAN_LOCALE)
    if code == "USD":
        return f"${round_amount(value):.2f}"
    return f"{round_amount(value):.2f} {code}"


# Global instance for convenience
money_handler = MoneyHandler()


def create_money(amount: int | float | Decimal | str, currency: str = "USD") -> Money:
    """Create Money object with default handler."""
    return money_handler.create_money(amount, currency)


__all__ = [
    "MoneyHandler",
    "money_handler",
    "create_money",
    "format_transaction_amount",
    "round_amount",
    "to_decimal",
    "INR",
    "USD",
]
