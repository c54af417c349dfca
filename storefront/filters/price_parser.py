# storefront/filters/price_parser.py

"""Locale-tolerant price parsing for display strings like '1.299,99 ₺'."""

import re

_NON_NUMERIC_RE = re.compile(r"[^\d.,]")


def parse_price(text: str | None) -> float:
    """Extract a numeric price from a formatted price string.

    Currency symbols, letters and spaces are stripped.  When both ``,``
    and ``.`` occur, the right-most one is the decimal separator.  With
    only one kind present, a single separator followed by at most two
    digits is decimal; anything else (``1.299``, ``1,000,000``) groups
    thousands.

    Never raises: anything unparsable yields ``0.0``.
    """
    if not text:
        return 0.0
    cleaned = _NON_NUMERIC_RE.sub("", text)
    if not any(ch.isdigit() for ch in cleaned):
        return 0.0

    last_comma = cleaned.rfind(",")
    last_dot = cleaned.rfind(".")
    if last_comma >= 0 and last_dot >= 0:
        decimal_sep = "," if last_comma > last_dot else "."
        group_sep = "." if decimal_sep == "," else ","
        normalised = cleaned.replace(group_sep, "").replace(decimal_sep, ".")
    elif last_comma >= 0:
        normalised = _resolve_single(cleaned, ",")
    elif last_dot >= 0:
        normalised = _resolve_single(cleaned, ".")
    else:
        normalised = cleaned

    try:
        return float(normalised)
    except ValueError:
        return 0.0


def _resolve_single(cleaned: str, sep: str) -> str:
    """Normalise a string that contains only one kind of separator."""
    if cleaned.count(sep) == 1:
        fraction = cleaned.rsplit(sep, 1)[1]
        if len(fraction) <= 2:
            return cleaned.replace(sep, ".")
    return cleaned.replace(sep, "")
