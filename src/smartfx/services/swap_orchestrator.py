"""Swap orchestration: sign a quote, then authorize, bound and settle a swap.

Sign and swap are sequenced through one lock: a swap is never submitted
while a signing request is outstanding. Outcomes are returned as result
objects carrying an ErrorKind, never as bare text.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

from eth_account import Account

from smartfx.config import Settings, get_settings
from smartfx.errors import ErrorKind, SmartFXError
from smartfx.fixed_point import from_amount_fixed, to_amount_fixed
from smartfx.ledger.base import ValueTransferService
from smartfx.ledger.consumption import ConsumptionStore, get_consumption_store
from smartfx.ledger.factory import create_ledger
from smartfx.ledger.simulated import SimulatedLedger
from smartfx.quotes.hashing import QuoteHasher
from smartfx.quotes.issuer import QuoteIssuer
from smartfx.quotes.models import Quote, QuoteState, SwapRequest
from smartfx.quotes.validator import QuoteValidator
from smartfx.rates.base import RateProvider
from smartfx.rates.exchangerate import ExchangeRateHostProvider
from smartfx.signing.base import SignerBackend
from smartfx.signing.factory import get_signer
from smartfx.slippage import DEFAULT_SLIPPAGE_BPS, min_out, validate_slippage

logger = logging.getLogger(__name__)


@dataclass
class SignResult:
    """Outcome of a signing attempt."""
    success: bool
    quote: Optional[Quote] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None


@dataclass
class SwapResult:
    """Outcome of a swap attempt."""
    success: bool
    amount_in: int = 0
    min_out: int = 0
    amount_out: Optional[int] = None
    settlement_ref: Optional[str] = None
    authorization_ref: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None


class SwapOrchestrator:
    """Sequences quote signing and swap settlement for one executor."""

    def __init__(
        self,
        issuer: QuoteIssuer,
        ledger: ValueTransferService,
        executor: str,
        spender: str,
        rate_provider: Optional[RateProvider] = None,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        fx_base: str = "USD",
        fx_symbol: str = "BRL",
        validator: Optional[QuoteValidator] = None,
    ):
        self.issuer = issuer
        self.validator = validator
        self.ledger = ledger
        self.executor = executor
        self.spender = spender
        self.rate_provider = rate_provider
        self.slippage_bps = validate_slippage(slippage_bps)
        self.fx_base = fx_base
        self.fx_symbol = fx_symbol
        self._sequence = asyncio.Lock()
        self._signing = False

    async def quote_state(self, quote: Quote, now: Optional[int] = None) -> QuoteState:
        """Report a quote's lifecycle state without consuming it."""
        if self.validator is None:
            raise RuntimeError("No validator configured")
        return await self.validator.state(quote, now)

    @property
    def signing_in_progress(self) -> bool:
        return self._signing

    async def fetch_rate(self) -> Optional[float]:
        """Read the current rate from the (untrusted) rate source."""
        if self.rate_provider is None:
            return None
        return await self.rate_provider.get_rate(self.fx_base, self.fx_symbol)

    async def sign_quote(self, rate: float, now: Optional[int] = None) -> SignResult:
        """Ask the authority to sign rate into a quote.

        A rejection is a normal outcome: the result says so and the caller
        may try again.
        """
        async with self._sequence:
            self._signing = True
            try:
                quote = await self.issuer.issue(rate, now)
            except SmartFXError as e:
                logger.info(f"Signing did not complete ({e.kind.value}): {e}")
                return SignResult(success=False, error_kind=e.kind, error=str(e))
            finally:
                self._signing = False

        return SignResult(success=True, quote=quote)

    async def swap(
        self,
        amount: Union[str, int],
        quote: Quote,
        slippage_bps: Optional[int] = None,
    ) -> SwapResult:
        """Authorize amount, compute the floor and settle against quote.

        Args:
            amount: Decimal string ("100.5") or 18-decimal integer
            quote: Signed quote; its rate is also the basis for min_out
            slippage_bps: Override of the default tolerance
        """
        async with self._sequence:
            try:
                return await self._swap(amount, quote, slippage_bps)
            except SmartFXError as e:
                logger.warning(f"Swap failed ({e.kind.value}): {e}")
                return SwapResult(success=False, error_kind=e.kind, error=str(e))

    async def _swap(self, amount: Union[str, int], quote: Quote, slippage_bps: Optional[int]) -> SwapResult:
        amount_in = to_amount_fixed(amount) if isinstance(amount, str) else int(amount)
        bps = validate_slippage(self.slippage_bps if slippage_bps is None else slippage_bps)

        # (a) authorize funds; nothing has touched the quote yet
        authorization_ref = await self.ledger.authorize(
            self.executor, self.spender, quote.from_token, amount_in
        )

        # (b) floor from the rate captured at sign time
        floor = min_out(amount_in, quote.rate, bps)

        # (c) verify, consume and settle on the ledger
        request = SwapRequest(amount_in=amount_in, min_out=floor, quote=quote, executor=self.executor)
        try:
            receipt = await self.ledger.swap_with_proof(request)
        except SmartFXError as e:
            logger.warning(f"Swap failed ({e.kind.value}): {e}")
            return SwapResult(
                success=False,
                amount_in=amount_in,
                min_out=floor,
                authorization_ref=authorization_ref,
                error_kind=e.kind,
                error=str(e),
            )

        # (d) settled
        logger.info(
            f"Swapped {from_amount_fixed(amount_in)} -> {from_amount_fixed(receipt.amount_out)} "
            f"ref={receipt.reference}"
        )
        return SwapResult(
            success=True,
            amount_in=amount_in,
            min_out=floor,
            amount_out=receipt.amount_out,
            settlement_ref=receipt.reference,
            authorization_ref=authorization_ref,
        )


async def build_orchestrator(
    settings: Optional[Settings] = None,
    signer: Optional[SignerBackend] = None,
    store: Optional[ConsumptionStore] = None,
    rate_provider: Optional[RateProvider] = None,
) -> SwapOrchestrator:
    """Wire hasher, signer, validator, ledger and rate source from settings."""
    settings = settings or get_settings()
    signer = signer or get_signer()
    store = store or get_consumption_store()

    authority = settings.authority_address or await signer.get_address()
    if not authority:
        raise ValueError("AUTHORITY_ADDRESS is not set and the signer has no key")

    executor = settings.executor_address
    if not executor and settings.executor_private_key:
        executor = Account.from_key(settings.executor_private_key).address
    if not executor:
        raise ValueError("EXECUTOR_ADDRESS or EXECUTOR_PRIVATE_KEY must be set")

    hasher = QuoteHasher.from_settings(settings)
    validator = QuoteValidator(
        hasher=hasher,
        authority=authority,
        store=store,
        freshness_window=settings.freshness_window_seconds,
        clock_skew=settings.clock_skew_seconds,
    )
    ledger = create_ledger(validator, settings)

    if isinstance(ledger, SimulatedLedger):
        ledger.mint(settings.from_token, executor, to_amount_fixed(settings.simulated_executor_balance))
        ledger.fund_pool(settings.to_token, to_amount_fixed(settings.simulated_pool_liquidity))

    issuer = QuoteIssuer(
        hasher=hasher,
        signer=signer,
        from_token=settings.from_token,
        to_token=settings.to_token,
    )
    logger.info(f"Orchestrator ready: authority={authority} executor={executor} ledger={ledger.name}")
    return SwapOrchestrator(
        issuer=issuer,
        ledger=ledger,
        executor=executor,
        spender=hasher.verifier,
        rate_provider=rate_provider or ExchangeRateHostProvider(settings.fx_api_url),
        slippage_bps=settings.default_slippage_bps,
        fx_base=settings.fx_base,
        fx_symbol=settings.fx_symbol,
        validator=validator,
    )


_orchestrator: Optional[SwapOrchestrator] = None


async def get_orchestrator() -> SwapOrchestrator:
    """Get the process-wide orchestrator, building it on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = await build_orchestrator()
    return _orchestrator


def reset_orchestrator(orchestrator: Optional[SwapOrchestrator] = None) -> None:
    """Replace or drop the process-wide orchestrator (for testing)."""
    global _orchestrator
    _orchestrator = orchestrator
