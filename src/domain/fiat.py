from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

# Recognized fiat codes. Keeps tokens like `1inch` or `3btc` out of calc mode.
FIAT_NAMES: dict[str, str] = {
    "USD": "US Dollar",
    "EUR": "Euro",
    "GBP": "British Pound",
    "JPY": "Japanese Yen",
    "CNY": "Chinese Yuan",
    "CAD": "Canadian Dollar",
    "AUD": "Australian Dollar",
    "CHF": "Swiss Franc",
    "KRW": "South Korean Won",
    "INR": "Indian Rupee",
    "BRL": "Brazilian Real",
    "RUB": "Russian Ruble",
    "TRY": "Turkish Lira",
    "ZAR": "South African Rand",
    "MXN": "Mexican Peso",
    "SGD": "Singapore Dollar",
    "HKD": "Hong Kong Dollar",
    "NOK": "Norwegian Krone",
    "SEK": "Swedish Krona",
    "DKK": "Danish Krone",
    "NZD": "New Zealand Dollar",
    "PLN": "Polish Zloty",
    "THB": "Thai Baht",
    "TWD": "New Taiwan Dollar",
    "CZK": "Czech Koruna",
    "HUF": "Hungarian Forint",
    "ILS": "Israeli Shekel",
    "PHP": "Philippine Peso",
    "MYR": "Malaysian Ringgit",
    "ARS": "Argentine Peso",
    "CLP": "Chilean Peso",
    "COP": "Colombian Peso",
    "IDR": "Indonesian Rupiah",
    "SAR": "Saudi Riyal",
    "AED": "UAE Dirham",
    "NGN": "Nigerian Naira",
    "VND": "Vietnamese Dong",
    "PKR": "Pakistani Rupee",
    "BDT": "Bangladeshi Taka",
    "EGP": "Egyptian Pound",
}

KNOWN_FIAT = frozenset(FIAT_NAMES)

_NUMBER_PREFIX = re.compile(r"[+-]?[0-9.]+")


@dataclass(frozen=True)
class FiatAmount:
    """A fiat amount typed on the command line, e.g. ``3.5EUR``."""

    amount: Decimal
    currency: str


def parse_fiat_amount(token: str) -> FiatAmount | None:
    """Parse ``<number><fiat code>`` into a FiatAmount.

    Returns None for anything else so the caller can fall through to plain
    price lookup.
    """

    alpha_start = next((idx for idx, char in enumerate(token) if char.isascii() and char.isalpha()), None)
    if not alpha_start:
        return None

    number_part, code_part = token[:alpha_start], token[alpha_start:]
    code = code_part.upper()
    if code not in KNOWN_FIAT:
        return None

    if not _NUMBER_PREFIX.fullmatch(number_part):
        return None

    try:
        amount = Decimal(number_part)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None

    return FiatAmount(amount=amount, currency=code)


def is_known_fiat(code: str) -> bool:
    return code.upper() in KNOWN_FIAT


def fiat_display_name(code: str) -> str:
    return FIAT_NAMES.get(code.upper(), code)


__all__ = ["FIAT_NAMES", "KNOWN_FIAT", "FiatAmount", "fiat_display_name", "is_known_fiat", "parse_fiat_amount"]
