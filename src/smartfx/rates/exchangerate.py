"""exchangerate.host rate source."""

import logging
import math
from typing import Optional

import httpx

from smartfx.rates.base import RateProvider

logger = logging.getLogger(__name__)

EXCHANGERATE_HOST_URL = "https://api.exchangerate.host/latest"


class ExchangeRateHostProvider(RateProvider):
    """Fetches the latest rate from an exchangerate.host-style endpoint.

    Expected response body: {"base": "USD", "rates": {"BRL": 5.1, ...}}
    """

    def __init__(self, api_url: str = EXCHANGERATE_HOST_URL, timeout: float = 10.0):
        self.api_url = api_url
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "exchangerate.host"

    async def get_rate(self, base: str, symbol: str) -> Optional[float]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.api_url,
                    params={"base": base.upper(), "symbols": symbol.upper()},
                    headers={"Cache-Control": "no-cache"},
                )

                if response.status_code != 200:
                    logger.warning(f"FX API error: {response.status_code}")
                    return None

                data = response.json()

        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch {base}/{symbol} rate: {e}")
            return None
        except ValueError as e:
            logger.error(f"FX API returned invalid JSON: {e}")
            return None

        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict):
            logger.warning("FX API response has no rates object")
            return None
        value = rates.get(symbol.upper())
        if value is None:
            logger.warning(f"FX API response has no rate for {symbol.upper()}")
            return None

        try:
            rate = float(value)
        except (TypeError, ValueError):
            logger.warning(f"FX API returned non-numeric rate: {value!r}")
            return None

        if not math.isfinite(rate) or rate <= 0:
            logger.warning(f"FX API returned unusable rate: {rate}")
            return None

        logger.debug(f"Fetched {base}/{symbol} = {rate}")
        return rate
