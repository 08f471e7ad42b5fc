"""Signed rate quotes.

- hashing: canonical commitment hash
- issuer: rate -> signed Quote
- validator: verification and exactly-once consumption
"""

from smartfx.quotes.hashing import QuoteHasher, commitment_hash, version_sentinel
from smartfx.quotes.models import Quote, QuoteState, SwapRequest

__all__ = [
    "Quote",
    "QuoteState",
    "SwapRequest",
    "QuoteHasher",
    "commitment_hash",
    "version_sentinel",
]
