"""Slippage floor for a swap at a signed rate.

gross_out = amount_in * rate // 10^8
min_out   = gross_out * (10000 - bps) // 10000

Integer truncation in exactly this order, so every implementation agrees.
"""

from smartfx.errors import InvalidSlippage
from smartfx.fixed_point import RATE_SCALE

BPS_DENOMINATOR = 10_000
DEFAULT_SLIPPAGE_BPS = 50


def gross_out(amount_in: int, rate_fixed8: int) -> int:
    """Output at the signed rate before any tolerance (18 decimals)."""
    if amount_in < 0:
        raise ValueError(f"amount_in must not be negative, got {amount_in}")
    if rate_fixed8 < 0:
        raise ValueError(f"rate must not be negative, got {rate_fixed8}")
    return amount_in * rate_fixed8 // RATE_SCALE


def validate_slippage(max_slippage_bps: int) -> int:
    """Raise InvalidSlippage unless 0 <= bps < 10000."""
    if isinstance(max_slippage_bps, bool) or not isinstance(max_slippage_bps, int):
        raise InvalidSlippage(f"Slippage must be an integer number of bps, got {max_slippage_bps!r}")
    if max_slippage_bps < 0 or max_slippage_bps >= BPS_DENOMINATOR:
        raise InvalidSlippage(f"Slippage must be in [0, {BPS_DENOMINATOR}) bps, got {max_slippage_bps}")
    return max_slippage_bps


def min_out(amount_in: int, rate_fixed8: int, max_slippage_bps: int = DEFAULT_SLIPPAGE_BPS) -> int:
    """Minimum acceptable output for amount_in at rate_fixed8.

    Raises:
        InvalidSlippage: If max_slippage_bps is negative or >= 10000
    """
    validate_slippage(max_slippage_bps)

    gross = gross_out(amount_in, rate_fixed8)
    return gross * (BPS_DENOMINATOR - max_slippage_bps) // BPS_DENOMINATOR
