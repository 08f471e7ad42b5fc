"""FX rate sources."""

from smartfx.rates.base import RateProvider
from smartfx.rates.exchangerate import ExchangeRateHostProvider
from smartfx.rates.static import StaticRateProvider

__all__ = ["RateProvider", "ExchangeRateHostProvider", "StaticRateProvider"]
