"""
Currency helpers

Static USD-based exchange rates, display formatting and country defaults
used by the localisation layer (preferred currency of a user, e-mail
receipts, converted quotes).
"""

import logging
from decimal import Decimal

logger = logging.getLogger(__name__)

# Units of each currency per one US dollar
EXCHANGE_RATES: dict[str, Decimal] = {
    'USD': Decimal('1'),
    'EUR': Decimal('0.85'),
    'SAR': Decimal('3.75'),
    'AED': Decimal('3.67'),
    'GBP': Decimal('0.73'),
    'CAD': Decimal('1.25'),
    'AUD': Decimal('1.35'),
}

SUPPORTED_CURRENCIES = tuple(EXCHANGE_RATES)

CURRENCY_SYMBOLS = {
    'USD': '$',
    'EUR': '€',
    'SAR': 'ر.س',
    'AED': 'د.إ',
    'GBP': '£',
    'CAD': 'C$',
    'AUD': 'A$',
}

# Currencies whose symbol is written after the amount
SUFFIX_SYMBOL_CURRENCIES = {'SAR', 'AED'}

COUNTRY_CURRENCY = {
    'US': 'USD',
    'GB': 'GBP',
    'CA': 'CAD',
    'AU': 'AUD',
    'SA': 'SAR',
    'AE': 'AED',
    'DE': 'EUR',
    'FR': 'EUR',
    'IT': 'EUR',
    'ES': 'EUR',
    'NL': 'EUR',
    'BE': 'EUR',
    'AT': 'EUR',
    'PT': 'EUR',
    'FI': 'EUR',
    'IE': 'EUR',
}


def convert_currency(amount: Decimal | None, from_currency: str, to_currency: str) -> Decimal | None:
    """
    Convert an amount between two supported currencies via USD.

    Unknown currencies leave the amount untouched and log a warning.
    """
    if amount is None or from_currency == to_currency:
        return amount

    from_rate = EXCHANGE_RATES.get(from_currency)
    to_rate = EXCHANGE_RATES.get(to_currency)
    if from_rate is None or to_rate is None:
        logger.warning(
            "Missing exchange rate for %s",
            from_currency if from_rate is None else to_currency,
        )
        return amount

    usd_amount = Decimal(amount) / from_rate
    return usd_amount * to_rate


def format_currency(amount: Decimal | None, currency: str = 'USD', language: str = 'en') -> str:
    """Render an amount with its currency symbol, e.g. ``$1,250`` or ``99.50 ر.س``."""
    if amount is None:
        return '0'

    amount = Decimal(amount)
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    if amount == amount.to_integral_value():
        formatted = f"{amount:,.0f}"
    else:
        formatted = f"{amount:,.2f}"

    if language == 'ar' or currency in SUFFIX_SYMBOL_CURRENCIES:
        return f"{formatted} {symbol}"
    return f"{symbol}{formatted}"


def currency_for_country(country_code: str | None) -> str:
    if not country_code:
        return 'USD'
    return COUNTRY_CURRENCY.get(country_code.upper(), 'USD')
