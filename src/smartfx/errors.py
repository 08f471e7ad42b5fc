"""Structured error conditions of the quote protocol.

Every failure carries an ErrorKind so callers can tell conditions apart
without parsing message text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure a sign or swap attempt can end in."""
    PARSE_ERROR = "parse_error"
    SIGNING_REJECTED = "signing_rejected"
    BAD_SIGNATURE = "bad_signature"
    STALE_QUOTE = "stale_quote"
    QUOTE_ALREADY_USED = "quote_already_used"
    INVALID_SLIPPAGE = "invalid_slippage"
    AUTHORIZATION_FAILED = "authorization_failed"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    ACTUAL_OUT_BELOW_MIN_OUT = "actual_out_below_min_out"
    SETTLEMENT_FAILED = "settlement_failed"


class SmartFXError(Exception):
    """Base exception for protocol failures."""

    kind: ErrorKind

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)

    @property
    def recoverable(self) -> bool:
        """Whether the caller may simply retry the same step."""
        return self.kind in (ErrorKind.PARSE_ERROR, ErrorKind.SIGNING_REJECTED)


class ParseError(SmartFXError, ValueError):
    """Malformed numeric input."""
    kind = ErrorKind.PARSE_ERROR


class SigningRejected(SmartFXError):
    """The signing authority declined, timed out or was cancelled."""
    kind = ErrorKind.SIGNING_REJECTED


class BadSignature(SmartFXError):
    """Signature does not recover to the designated authority."""
    kind = ErrorKind.BAD_SIGNATURE


class StaleQuote(SmartFXError):
    """Quote timestamp is outside the freshness window."""
    kind = ErrorKind.STALE_QUOTE


class QuoteAlreadyUsed(SmartFXError):
    """Quote has already been consumed by a settled swap."""
    kind = ErrorKind.QUOTE_ALREADY_USED


class InvalidSlippage(SmartFXError, ValueError):
    """Slippage tolerance outside [0, 10000) basis points."""
    kind = ErrorKind.INVALID_SLIPPAGE


class AuthorizationFailed(SmartFXError):
    """Funds could not be authorized for the swap."""
    kind = ErrorKind.AUTHORIZATION_FAILED


class InsufficientLiquidity(SmartFXError):
    """Counterparty pool cannot cover the requested output."""
    kind = ErrorKind.INSUFFICIENT_LIQUIDITY


class ActualOutBelowMinOut(SmartFXError):
    """Output at the settlement rate is below the caller's floor."""
    kind = ErrorKind.ACTUAL_OUT_BELOW_MIN_OUT


class LedgerError(SmartFXError):
    """Node, transport or unrecognized contract failure during settlement."""
    kind = ErrorKind.SETTLEMENT_FAILED


_BY_KIND = {
    cls.kind: cls
    for cls in (
        ParseError,
        SigningRejected,
        BadSignature,
        StaleQuote,
        QuoteAlreadyUsed,
        InvalidSlippage,
        AuthorizationFailed,
        InsufficientLiquidity,
        ActualOutBelowMinOut,
        LedgerError,
    )
}


def error_for_kind(kind: ErrorKind, message: str = "") -> SmartFXError:
    """Build the exception instance matching an error kind."""
    return _BY_KIND[kind](message)
