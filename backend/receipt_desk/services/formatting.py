"""
Locale-aware formatting and tolerant parsing of numbers, dates and amounts.

Supported locales are the ones the application offers: ``fr-MA`` (default),
``ar-MA`` and ``en-US``. Unknown locales fall back to ``fr-MA``.
"""

import logging
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from ..models import CURRENCY

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "fr-MA"

# (decimal separator, group separator)
_SEPARATORS: dict[str, tuple[str, str]] = {
    "fr-MA": (",", "."),
    "ar-MA": (",", "."),
    "en-US": (".", ","),
}

_DATE_FORMATS: dict[str, tuple[str, str]] = {
    "fr-MA": ("%d/%m/%Y %H:%M", "%d/%m/%Y"),
    "ar-MA": ("%d/%m/%Y %H:%M", "%d/%m/%Y"),
    "en-US": ("%m/%d/%Y, %I:%M %p", "%m/%d/%Y"),
}

_ARABIC_INDIC_DIGITS = "٠١٢٣٤٥٦٧٨٩"
_TO_ARABIC = str.maketrans("0123456789", _ARABIC_INDIC_DIGITS)
_TO_LATIN = str.maketrans(_ARABIC_INDIC_DIGITS, "0123456789")

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_ARABIC_SCRIPT = re.compile(r"[\u0600-\u06FF]")

HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.75


def _resolve_locale(locale: str) -> str:
    if locale in _SEPARATORS:
        return locale
    logger.debug(f"Unsupported locale {locale!r}, using {DEFAULT_LOCALE}")
    return DEFAULT_LOCALE


def _format_decimal(value: float, locale: str, min_digits: int, max_digits: int) -> str:
    decimal_sep, group_sep = _SEPARATORS[_resolve_locale(locale)]

    amount = Decimal(str(value)).quantize(Decimal(1).scaleb(-max_digits), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    integer_part, _, fraction = f"{abs(amount):f}".partition(".")

    fraction = fraction.rstrip("0")
    if len(fraction) < min_digits:
        fraction = fraction.ljust(min_digits, "0")

    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)

    text = group_sep.join(groups)
    if fraction:
        text = f"{text}{decimal_sep}{fraction}"
    return sign + text


def format_currency(amount: float, locale: str = DEFAULT_LOCALE) -> str:
    """Format an amount with exactly two decimals, suffixed with the currency code."""
    return f"{_format_decimal(amount, locale, 2, 2)} {CURRENCY}"


def format_number(value: float, locale: str = DEFAULT_LOCALE) -> str:
    """Format a quantity with two to three decimals."""
    return _format_decimal(value, locale, 2, 3)


def leading_float(text: str) -> Optional[float]:
    """
    Parse the leading numeric prefix of a string.

    Trailing garbage is ignored ("12kg" -> 12.0); a string without a numeric
    prefix yields None.
    """
    match = _LEADING_FLOAT.match(text)
    if not match:
        return None
    return float(match.group(1))


def parse_number(value: str) -> Optional[float]:
    """
    Parse user-entered numbers.

    Arabic-Indic digits are converted to Latin digits, commas are treated as
    decimal points and whitespace is removed before parsing.
    """
    normalized = to_latin_numerals(value).replace(",", ".")
    normalized = re.sub(r"\s", "", normalized)
    return leading_float(normalized)


def to_arabic_numerals(value: str) -> str:
    return value.translate(_TO_ARABIC)


def to_latin_numerals(value: str) -> str:
    return value.translate(_TO_LATIN)


def _as_datetime(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_date(value: Union[str, datetime], locale: str = DEFAULT_LOCALE) -> str:
    """Format a date with time (minutes precision)."""
    pattern, _ = _DATE_FORMATS[_resolve_locale(locale)]
    return _as_datetime(value).strftime(pattern)


def format_date_short(value: Union[str, datetime], locale: str = DEFAULT_LOCALE) -> str:
    """Format a date without time."""
    _, pattern = _DATE_FORMATS[_resolve_locale(locale)]
    return _as_datetime(value).strftime(pattern)


def is_rtl(text: str) -> bool:
    """True when the text contains Arabic script."""
    return bool(_ARABIC_SCRIPT.search(text))


def format_confidence(value: float) -> str:
    """Render a [0, 1] confidence as a whole percentage, e.g. 0.855 -> '86%'."""
    percent = (Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{percent}%"


def confidence_level(value: float) -> str:
    """Bucket a confidence score into 'high', 'medium' or 'low'."""
    if value >= HIGH_CONFIDENCE:
        return "high"
    if value >= MEDIUM_CONFIDENCE:
        return "medium"
    return "low"
