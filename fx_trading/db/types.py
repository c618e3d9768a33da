"""
Module: fx_trading.db.types
Responsibility: Annotated column type aliases and helpers for trade
    economics.  Centralizes scale, rounding, decimal parsing and ISO 4217
    currency checks so that models, validation and services agree.
Architecture position: DB layer.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Amounts carry scale 4, exchange rates scale 6.
    - round_money() is the ONLY sanctioned rounding function for amounts
      (ROUND_HALF_UP).
    - No floats: to_decimal() parses through str so binary float noise is
      never introduced silently.

Failure modes:
    - InvalidCurrencyError on a code that is not ISO 4217.
    - ValueError from to_decimal() on a non-numeric value.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import String
from sqlalchemy.orm import mapped_column

from fx_trading.db.base import ExactDecimal

# Scale of monetary amounts (base and quote)
MONEY_DECIMAL_PLACES = 4
# Scale of exchange rates
RATE_DECIMAL_PLACES = 6
DEFAULT_ROUNDING = ROUND_HALF_UP

# Largest value a Money column holds
MAX_MONEY_VALUE = Decimal("999999999999999.9999")

# 15 integer digits + 4 fractional
Money = Annotated[Decimal, mapped_column(ExactDecimal(19, MONEY_DECIMAL_PLACES))]

# 9 integer digits + 6 fractional
Rate = Annotated[Decimal, mapped_column(ExactDecimal(15, RATE_DECIMAL_PLACES))]

# ISO 4217 currency code (e.g., "USD", "EUR", "GBP")
Currency = Annotated[str, mapped_column(String(3))]


def to_decimal(value: Any) -> Decimal:
    """
    Parse a user-supplied numeric value as an exact Decimal.

    Floats are converted through their shortest repr, so ``1.1`` becomes
    ``Decimal("1.1")`` and not the binary expansion.

    Raises:
        ValueError: If value is not numeric, or is NaN/infinite.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a decimal amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a decimal amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Quantize ``value`` to ``decimal_places`` (half-up unless told otherwise).

    Used for base and quote amounts at scale 4 and for exchange rates at
    scale 6.  ``round_money(Decimal("0.015"))`` is ``Decimal("0.0150")``:
    the result always carries exactly ``decimal_places`` digits, which is
    what ExactDecimal binds.
    """
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)


def fractional_digits(value: Decimal) -> int:
    """Number of significant fractional digits (trailing zeros ignored)."""
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


ISO_4217_CURRENCIES: set[str] = {
    # Pairs traded most often
    "USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD",
    # Remaining active codes, plus funds and precious metals
    "AED", "AFN", "ALL", "AMD", "ANG", "AOA", "ARS", "AWG", "AZN",
    "BAM", "BBD", "BDT", "BGN", "BHD", "BIF", "BMD", "BND", "BOB", "BOV", "BRL", "BSD", "BTN", "BWP", "BYN", "BZD",
    "CDF", "CHE", "CHW", "CLF", "CLP", "CNY", "COP", "COU", "CRC", "CUC", "CUP", "CVE", "CZK",
    "DJF", "DKK", "DOP", "DZD",
    "EGP", "ERN", "ETB",
    "FJD", "FKP",
    "GEL", "GHS", "GIP", "GMD", "GNF", "GTQ", "GYD",
    "HKD", "HNL", "HRK", "HTG", "HUF",
    "IDR", "ILS", "INR", "IQD", "IRR", "ISK",
    "JMD", "JOD",
    "KES", "KGS", "KHR", "KMF", "KPW", "KRW", "KWD", "KYD", "KZT",
    "LAK", "LBP", "LKR", "LRD", "LSL", "LYD",
    "MAD", "MDL", "MGA", "MKD", "MMK", "MNT", "MOP", "MRU", "MUR", "MVR", "MWK", "MXN", "MXV", "MYR", "MZN",
    "NAD", "NGN", "NIO", "NOK", "NPR",
    "OMR",
    "PAB", "PEN", "PGK", "PHP", "PKR", "PLN", "PYG",
    "QAR",
    "RON", "RSD", "RUB", "RWF",
    "SAR", "SBD", "SCR", "SDG", "SEK", "SGD", "SHP", "SLE", "SLL", "SOS", "SRD", "SSP", "STN", "SVC", "SYP", "SZL",
    "THB", "TJS", "TMT", "TND", "TOP", "TRY", "TTD", "TWD", "TZS",
    "UAH", "UGX", "USN", "UYI", "UYU", "UYW", "UZS",
    "VED", "VES", "VND", "VUV",
    "WST",
    "XAF", "XAG", "XAU", "XBA", "XBB", "XBC", "XBD", "XCD", "XDR", "XOF", "XPD", "XPF", "XPT", "XSU", "XTS", "XUA", "XXX",
    "YER",
    "ZAR", "ZMW", "ZWL",
}


class InvalidCurrencyError(ValueError):
    """A currency code outside ISO 4217."""

    def __init__(self, currency: object):
        self.currency = currency
        super().__init__(f"{currency!r} is not an ISO 4217 currency code")


def validate_currency(currency: object) -> str:
    """
    Return ``currency`` trimmed and upper-cased if it is an ISO 4217 code.

    Raises:
        InvalidCurrencyError: for non-strings and unknown codes.
    """
    if not isinstance(currency, str):
        raise InvalidCurrencyError(currency)
    code = currency.strip().upper()
    if code not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)
    return code


def is_valid_currency(currency: object) -> bool:
    return isinstance(currency, str) and currency.strip().upper() in ISO_4217_CURRENCIES
