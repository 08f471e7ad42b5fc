"""Quote and rate endpoints."""

import logging

from fastapi import APIRouter, Depends

from smartfx.api.contracts import (
    MinOutRequest,
    MinOutResponse,
    QuoteRecord,
    RateResponse,
    SignQuoteRequest,
    SignQuoteResponse,
    VerifyQuoteRequest,
    VerifyQuoteResponse,
)
from smartfx.errors import SmartFXError
from smartfx.fixed_point import parse_rate_fixed, to_amount_fixed
from smartfx.services.swap_orchestrator import SwapOrchestrator, get_orchestrator
from smartfx.slippage import min_out

logger = logging.getLogger(__name__)

router = APIRouter(tags=["quotes"])


@router.get("/rates", response_model=RateResponse)
async def get_rate(orchestrator: SwapOrchestrator = Depends(get_orchestrator)) -> RateResponse:
    """Fetch the current rate from the FX source.

    The value is untrusted until it has been signed into a quote.
    """
    rate = await orchestrator.fetch_rate()
    source = orchestrator.rate_provider.name if orchestrator.rate_provider else None
    if rate is None:
        return RateResponse(
            success=False,
            base=orchestrator.fx_base,
            symbol=orchestrator.fx_symbol,
            source=source,
            error="Rate unavailable",
        )
    return RateResponse(
        success=True,
        base=orchestrator.fx_base,
        symbol=orchestrator.fx_symbol,
        rate=rate,
        source=source,
    )


@router.post("/quotes/sign", response_model=SignQuoteResponse)
async def sign_quote(
    request: SignQuoteRequest,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> SignQuoteResponse:
    """Sign a rate into a quote.

    Uses the rate in the request, or the FX source's rate when none is given.
    """
    rate = request.rate
    if rate is None:
        rate = await orchestrator.fetch_rate()
        if rate is None:
            return SignQuoteResponse(success=False, error="Fetch or enter a rate first")

    result = await orchestrator.sign_quote(rate)
    if not result.success:
        return SignQuoteResponse(success=False, error_kind=result.error_kind, error=result.error)
    return SignQuoteResponse(success=True, quote=QuoteRecord.from_quote(result.quote))


@router.post("/quotes/verify", response_model=VerifyQuoteResponse)
async def verify_quote(
    request: VerifyQuoteRequest,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> VerifyQuoteResponse:
    """Report a quote's state without consuming it."""
    try:
        quote = request.quote.to_quote()
    except SmartFXError as e:
        return VerifyQuoteResponse(success=False, error_kind=e.kind, error=str(e))

    state = await orchestrator.quote_state(quote)
    return VerifyQuoteResponse(success=True, state=state.value)


@router.post("/quotes/min-out", response_model=MinOutResponse)
async def get_min_out(
    request: MinOutRequest,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> MinOutResponse:
    """Slippage floor for an amount at a signed rate."""
    bps = orchestrator.slippage_bps if request.slippage_bps is None else request.slippage_bps
    try:
        amount_in = to_amount_fixed(request.amount)
        floor = min_out(amount_in, parse_rate_fixed(request.rate), bps)
    except SmartFXError as e:
        return MinOutResponse(success=False, error_kind=e.kind, error=str(e))
    return MinOutResponse.from_units(amount_in, floor)
