"""Swap endpoint."""

from fastapi import APIRouter, Depends

from smartfx.api.contracts import SwapRequestBody, SwapResponse
from smartfx.errors import SmartFXError
from smartfx.fixed_point import from_amount_fixed
from smartfx.services.swap_orchestrator import SwapOrchestrator, get_orchestrator

router = APIRouter(prefix="/swaps", tags=["swaps"])


@router.post("", response_model=SwapResponse)
async def execute_swap(
    request: SwapRequestBody,
    orchestrator: SwapOrchestrator = Depends(get_orchestrator),
) -> SwapResponse:
    """Authorize the input amount and swap at the quote's signed rate.

    Failures come back with success=false and an error_kind.
    """
    try:
        quote = request.quote.to_quote()
    except SmartFXError as e:
        return SwapResponse(success=False, error_kind=e.kind, error=str(e))

    result = await orchestrator.swap(request.amount, quote, request.slippage_bps)

    return SwapResponse(
        success=result.success,
        amount_in=from_amount_fixed(result.amount_in),
        min_out=from_amount_fixed(result.min_out),
        amount_out=from_amount_fixed(result.amount_out) if result.amount_out is not None else None,
        settlement_ref=result.settlement_ref,
        error_kind=result.error_kind,
        error=result.error,
    )
