"""Quote issuance: rate -> fixed point -> commitment hash -> signature."""

import logging
import time
from typing import Callable, Optional

from smartfx.errors import SigningRejected
from smartfx.fixed_point import from_rate_fixed, to_rate_fixed
from smartfx.quotes.hashing import QuoteHasher, normalize_address
from smartfx.quotes.models import Quote
from smartfx.signing.base import SignerBackend, SigningRequest

logger = logging.getLogger(__name__)


class QuoteIssuer:
    """Turns a raw rate into a signed Quote for one token pair."""

    def __init__(
        self,
        hasher: QuoteHasher,
        signer: SignerBackend,
        from_token: str,
        to_token: str,
        clock: Callable[[], float] = time.time,
        key_id: str = "authority",
    ):
        self.hasher = hasher
        self.signer = signer
        self.from_token = normalize_address(from_token)
        self.to_token = normalize_address(to_token)
        self.clock = clock
        self.key_id = key_id

    async def sign(self, message_hash: bytes, metadata: Optional[dict] = None) -> bytes:
        """Sign a commitment hash.

        Raises:
            SigningRejected: If the authority declines or the backend fails
        """
        result = await self.signer.sign(
            SigningRequest(message_hash=message_hash, key_id=self.key_id, metadata=metadata)
        )
        if not result.success or result.signature is None:
            raise SigningRejected(result.error or "Signing request was not completed")
        return result.signature

    async def issue(self, rate: float, now: Optional[int] = None) -> Quote:
        """Build and sign a quote for the configured pair.

        Args:
            rate: to_token per 1 from_token, e.g. 5.10
            now: Commitment timestamp (defaults to the clock)

        Raises:
            ParseError: If the rate is not a positive finite number
            SigningRejected: If signing does not complete
        """
        rate_fixed = to_rate_fixed(rate)
        timestamp = int(now if now is not None else self.clock())

        message_hash = self.hasher.hash_quote(self.from_token, self.to_token, rate_fixed, timestamp)
        metadata = {
            "from_token": self.from_token,
            "to_token": self.to_token,
            "rate": from_rate_fixed(rate_fixed),
            "timestamp": timestamp,
        }

        try:
            signature = await self.sign(message_hash, metadata)
        except SigningRejected as e:
            logger.info(f"Quote signing rejected: {e}")
            raise

        logger.info(
            f"Issued quote {self.from_token}->{self.to_token} rate={metadata['rate']} ts={timestamp}"
        )
        return Quote(
            from_token=self.from_token,
            to_token=self.to_token,
            rate=rate_fixed,
            timestamp=timestamp,
            signature=signature,
        )
