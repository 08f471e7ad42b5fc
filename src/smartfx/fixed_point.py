"""Fixed-point conversion for rates (8 decimals) and token amounts (18 decimals).

Rates are rounded half-to-even on the shortest decimal form of the float,
so the signer and the verifier arrive at the same integer.
"""

import math
import re
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from smartfx.errors import ParseError

RATE_DECIMALS = 8
AMOUNT_DECIMALS = 18

RATE_SCALE = 10**RATE_DECIMALS
AMOUNT_SCALE = 10**AMOUNT_DECIMALS

_RATE_TEXT = re.compile(r"(\d+)(?:\.(\d{1,8}))?", re.ASCII)


def to_rate_fixed(rate: float) -> int:
    """Convert a decimal rate to an integer scaled by 10^8.

    Raises:
        ParseError: If the rate is not finite or rounds to zero or below
    """
    try:
        value = float(rate)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid rate: {rate!r}") from e

    if not math.isfinite(value):
        raise ParseError(f"Rate must be finite, got {rate!r}")

    try:
        scaled = (Decimal(repr(value)) * RATE_SCALE).quantize(
            Decimal(1), rounding=ROUND_HALF_EVEN
        )
    except InvalidOperation as e:
        raise ParseError(f"Rate out of range: {rate!r}") from e
    fixed = int(scaled)
    if fixed <= 0:
        raise ParseError(f"Rate must be positive, got {rate!r}")
    return fixed


def to_amount_fixed(amount: str) -> int:
    """Parse a decimal amount string into an integer scaled by 10^18.

    Raises:
        ParseError: On empty, malformed, negative or over-precise input
    """
    if not isinstance(amount, str) or not amount.strip():
        raise ParseError(f"Invalid amount: {amount!r}")

    text = amount.strip()
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise ParseError(f"Invalid amount: {amount!r}") from e

    if not value.is_finite():
        raise ParseError(f"Amount must be finite: {amount!r}")
    if value < 0:
        raise ParseError(f"Amount must not be negative: {amount!r}")

    _, digits, exponent = value.as_tuple()
    if -exponent > AMOUNT_DECIMALS:
        raise ParseError(f"Amount has more than {AMOUNT_DECIMALS} decimals: {amount!r}")

    # Integer arithmetic: Decimal operations round at 28 significant digits
    coefficient = int("".join(str(d) for d in digits) or "0")
    return coefficient * 10 ** (AMOUNT_DECIMALS + exponent)


def _format_fixed(value: int, decimals: int) -> str:
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    if not frac:
        return f"{sign}{whole}"
    frac_text = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_text}"


def from_rate_fixed(rate_fixed: int) -> str:
    """Render an 8-decimal fixed-point rate as an exact decimal string."""
    return _format_fixed(rate_fixed, RATE_DECIMALS)


def from_amount_fixed(amount_fixed: int) -> str:
    """Render an 18-decimal fixed-point amount as an exact decimal string."""
    return _format_fixed(amount_fixed, AMOUNT_DECIMALS)


def parse_rate_fixed(text: str) -> int:
    """Parse an exact decimal rate string (at most 8 decimals) into fixed point.

    Unlike to_rate_fixed() no rounding happens: the text must already be
    the decimal form of an 8-decimal value.
    """
    match = _RATE_TEXT.fullmatch(str(text).strip())
    if match is None:
        raise ParseError(f"Malformed rate: {text!r}")
    whole, frac = match.group(1), match.group(2) or ""
    return int(whole) * RATE_SCALE + int(frac.ljust(RATE_DECIMALS, "0") or "0")
