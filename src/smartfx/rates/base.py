"""Abstract interface for FX rate sources.

Rate sources are untrusted and unauthenticated. A rate they return is only
a proposal: it moves value only after it has been signed into a quote and
verified.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class RateProvider(ABC):
    """Abstract base class for FX rate sources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        pass

    @abstractmethod
    async def get_rate(self, base: str, symbol: str) -> Optional[float]:
        """
        Get the exchange rate between two currencies.

        Args:
            base: Currency being priced (e.g., "USD")
            symbol: Currency the price is expressed in (e.g., "BRL")

        Returns:
            Units of symbol per 1 base, or None if unavailable
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
