"""Manually entered rate."""

from typing import Optional

from smartfx.rates.base import RateProvider


class StaticRateProvider(RateProvider):
    """Returns a rate typed in by the operator, for any pair."""

    def __init__(self, rate: Optional[float] = None):
        self.rate = rate

    @property
    def name(self) -> str:
        return "manual"

    def set_rate(self, rate: Optional[float]) -> None:
        self.rate = rate

    async def get_rate(self, base: str, symbol: str) -> Optional[float]:
        return self.rate
