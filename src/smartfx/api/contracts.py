"""Request and response contracts for the HTTP API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from smartfx.errors import ErrorKind
from smartfx.fixed_point import from_amount_fixed
from smartfx.quotes.models import Quote


class QuoteRecord(BaseModel):
    """Serialized quote, as displayed to the user."""

    model_config = ConfigDict(populate_by_name=True)

    from_token: str = Field(..., alias="fromToken", description="Input token address")
    to_token: str = Field(..., alias="toToken", description="Output token address")
    rate: str = Field(..., description="Rate as a decimal string (8 decimals max)")
    timestamp: int = Field(..., ge=0, description="Commitment time, unix seconds")
    signature: str = Field(..., description="Authority signature, 0x hex")

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteRecord":
        return cls.model_validate(quote.to_record())

    def to_quote(self) -> Quote:
        return Quote.from_record(self.model_dump(by_alias=True))


class RateResponse(BaseModel):
    """Current rate from the FX source."""

    success: bool
    base: str
    symbol: str
    rate: Optional[float] = None
    source: Optional[str] = None
    error: Optional[str] = None


class SignQuoteRequest(BaseModel):
    """Request to sign a rate into a quote."""

    rate: Optional[float] = Field(
        default=None, gt=0, description="Rate to sign; fetched from the FX source when omitted"
    )


class SignQuoteResponse(BaseModel):
    success: bool
    quote: Optional[QuoteRecord] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None


class VerifyQuoteRequest(BaseModel):
    quote: QuoteRecord


class VerifyQuoteResponse(BaseModel):
    success: bool
    state: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None


class MinOutRequest(BaseModel):
    amount: str = Field(..., description="Input amount as a decimal string")
    rate: str = Field(..., description="Signed rate as a decimal string")
    slippage_bps: Optional[int] = Field(default=None, description="Slippage tolerance in bps")


class MinOutResponse(BaseModel):
    success: bool
    amount_in: Optional[str] = None
    min_out: Optional[str] = None
    min_out_units: Optional[str] = Field(None, description="18-decimal integer, as text")
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @classmethod
    def from_units(cls, amount_in: int, min_out: int) -> "MinOutResponse":
        return cls(
            success=True,
            amount_in=from_amount_fixed(amount_in),
            min_out=from_amount_fixed(min_out),
            min_out_units=str(min_out),
        )


class SwapRequestBody(BaseModel):
    amount: str = Field(..., description="Input amount as a decimal string")
    quote: QuoteRecord
    slippage_bps: Optional[int] = Field(default=None, description="Slippage tolerance in bps")


class SwapResponse(BaseModel):
    success: bool
    amount_in: Optional[str] = None
    min_out: Optional[str] = None
    amount_out: Optional[str] = None
    settlement_ref: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
