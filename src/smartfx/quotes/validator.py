"""Quote verification and consumption.

Unverified -> Valid | Rejected, then Valid -> Consumed | Expired.

verify() runs the three checks in order (signature, freshness, prior
consumption). consume() repeats them under the quote's lock, prepares the
settlement, writes the consumption record and applies the transfer. A
failure before the record is written leaves the quote usable.
"""

import logging
import time
from typing import Awaitable, Callable, Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from smartfx.errors import BadSignature, QuoteAlreadyUsed, StaleQuote
from smartfx.ledger.base import PreparedSettlement, SettlementReceipt
from smartfx.ledger.consumption import ConsumptionRecord, ConsumptionStore
from smartfx.quotes.hashing import QuoteHasher, normalize_address
from smartfx.quotes.models import Quote, QuoteState
from smartfx.utils.locks import quote_lock

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW_SECONDS = 300
SIGNATURE_LENGTH = 65

# secp256k1 group order; s above half of it is the malleable twin
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2
RECOVERY_IDS = (27, 28)


def check_canonical(signature: bytes) -> None:
    """Accept only the one encoding the verifying contract accepts.

    Each commitment then has a single valid signature, so the signature
    bytes can serve as its consumption key.

    Raises:
        BadSignature: On wrong length, high s or a v other than 27/28
    """
    if len(signature) != SIGNATURE_LENGTH:
        raise BadSignature(f"Signature must be {SIGNATURE_LENGTH} bytes")
    s = int.from_bytes(signature[32:64], "big")
    v = signature[64]
    if v not in RECOVERY_IDS:
        raise BadSignature(f"Signature v must be 27 or 28, got {v}")
    if s > SECP256K1_HALF_N:
        raise BadSignature("Signature s is in the upper half of the curve order")


class QuoteValidator:
    """Checks quotes against the single designated authority."""

    def __init__(
        self,
        hasher: QuoteHasher,
        authority: str,
        store: ConsumptionStore,
        freshness_window: int = FRESHNESS_WINDOW_SECONDS,
        clock_skew: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        self.hasher = hasher
        self.authority = normalize_address(authority)
        self.store = store
        self.freshness_window = freshness_window
        self.clock_skew = clock_skew
        self.clock = clock

    def _now(self, now: Optional[int]) -> int:
        return int(now if now is not None else self.clock())

    def recover_signer(self, quote: Quote) -> str:
        """Recover the address that signed the quote's commitment.

        Raises:
            BadSignature: If the signature is not canonical, the fields
                cannot be hashed or recovery fails
        """
        check_canonical(quote.signature)

        try:
            message_hash = self.hasher.hash_quote(
                quote.from_token, quote.to_token, quote.rate, quote.timestamp
            )
        except ValueError as e:
            raise BadSignature(f"Quote fields cannot be committed: {e}") from e

        try:
            return Account.recover_message(
                encode_defunct(primitive=message_hash), signature=quote.signature
            )
        except Exception as e:
            raise BadSignature(f"Signature recovery failed: {e}") from e

    def check_signature(self, quote: Quote) -> None:
        signer = self.recover_signer(quote)
        if signer != self.authority:
            raise BadSignature(f"Quote signed by {signer}, not the rate authority")

    def check_freshness(self, quote: Quote, now: Optional[int] = None) -> None:
        now = self._now(now)
        age = now - quote.timestamp
        if age > self.freshness_window:
            raise StaleQuote(f"Quote is {age}s old (window {self.freshness_window}s)")
        if -age > self.clock_skew:
            raise StaleQuote(f"Quote timestamp is {-age}s in the future")

    async def check_unused(self, quote: Quote) -> None:
        if await self.store.is_consumed(quote.consumption_key):
            raise QuoteAlreadyUsed("Quote has already been used")

    async def verify(self, quote: Quote, now: Optional[int] = None) -> None:
        """Take a quote from Unverified to Valid, or raise.

        Raises:
            BadSignature: Signature does not recover to the authority
            StaleQuote: Outside the freshness window
            QuoteAlreadyUsed: Already consumed
        """
        self.check_signature(quote)
        self.check_freshness(quote, now)
        await self.check_unused(quote)

    async def state(self, quote: Quote, now: Optional[int] = None) -> QuoteState:
        """Report where a quote stands without changing anything."""
        try:
            self.check_signature(quote)
        except BadSignature:
            return QuoteState.REJECTED
        if await self.store.is_consumed(quote.consumption_key):
            return QuoteState.CONSUMED
        try:
            self.check_freshness(quote, now)
        except StaleQuote:
            return QuoteState.EXPIRED
        return QuoteState.VALID

    async def consume(
        self,
        quote: Quote,
        executor: str,
        prepare: Callable[[], Awaitable[PreparedSettlement]],
        now: Optional[int] = None,
    ) -> SettlementReceipt:
        """Verify the quote and settle it exactly once.

        Args:
            quote: Quote presented with the swap
            executor: Address submitting the swap
            prepare: Checks the value movement and returns it unapplied
            now: Evaluation time (defaults to the clock)

        Raises:
            Anything verify() raises, and whatever prepare() raises. In both
            cases the consumption record is left untouched.
        """
        key = quote.consumption_key
        # Forged quotes never reach the lock registry
        self.check_signature(quote)

        async with quote_lock(key, operation="consume"):
            self.check_freshness(quote, now)
            await self.check_unused(quote)

            prepared = await prepare()

            record = ConsumptionRecord(
                key=key,
                from_token=quote.from_token,
                to_token=quote.to_token,
                rate=quote.rate,
                timestamp=quote.timestamp,
                executor=executor,
                amount_in=prepared.amount_in,
                amount_out=prepared.amount_out,
                settlement_ref=prepared.reference,
            )
            if not await self.store.put_if_absent(record):
                raise QuoteAlreadyUsed("Quote was consumed by a concurrent swap")

            prepared.apply()

        logger.info(
            f"Consumed quote {key[:18]}... executor={executor} "
            f"in={prepared.amount_in} out={prepared.amount_out} ref={prepared.reference}"
        )
        return SettlementReceipt(
            reference=prepared.reference,
            amount_in=prepared.amount_in,
            amount_out=prepared.amount_out,
            executor=executor,
        )
