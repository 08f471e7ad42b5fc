"""Quote value objects."""

from dataclasses import dataclass
from enum import Enum

from eth_utils import to_checksum_address

from smartfx.errors import ParseError
from smartfx.fixed_point import from_rate_fixed, parse_rate_fixed


class QuoteState(str, Enum):
    """Where a quote stands in its lifecycle."""
    UNVERIFIED = "unverified"
    VALID = "valid"
    REJECTED = "rejected"      # Bad signature
    EXPIRED = "expired"        # Outside the freshness window
    CONSUMED = "consumed"      # Used by a settled swap (terminal)


@dataclass(frozen=True)
class Quote:
    """A signed rate commitment.

    Attributes:
        from_token: Address of the input asset
        to_token: Address of the output asset
        rate: to_token units per 1 from_token, fixed-point with 8 decimals
        timestamp: Unix seconds at which the rate was committed
        signature: 65-byte authority signature (r || s || v)
    """
    from_token: str
    to_token: str
    rate: int
    timestamp: int
    signature: bytes

    def __post_init__(self):
        if self.rate <= 0:
            raise ValueError(f"Quote rate must be positive, got {self.rate}")
        if self.timestamp < 0:
            raise ValueError(f"Quote timestamp must not be negative, got {self.timestamp}")

    @property
    def signature_hex(self) -> str:
        return "0x" + self.signature.hex()

    @property
    def consumption_key(self) -> str:
        """Key under which consumption is recorded (signature hex, lower-case)."""
        return self.signature_hex.lower()

    def to_record(self) -> dict:
        """Serialize for display and debugging (not for re-signing)."""
        return {
            "fromToken": self.from_token,
            "toToken": self.to_token,
            "rate": from_rate_fixed(self.rate),
            "timestamp": self.timestamp,
            "signature": self.signature_hex,
        }

    @classmethod
    def from_record(cls, record: dict) -> "Quote":
        """Rebuild a quote from its serialized record.

        Raises:
            ParseError: If any field is missing or malformed
        """
        try:
            rate = parse_rate_fixed(str(record["rate"]))
            signature = bytes.fromhex(str(record["signature"]).removeprefix("0x"))
            return cls(
                from_token=to_checksum_address(record["fromToken"]),
                to_token=to_checksum_address(record["toToken"]),
                rate=rate,
                timestamp=int(record["timestamp"]),
                signature=signature,
            )
        except ParseError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"Malformed quote record: {e}") from e


@dataclass(frozen=True)
class SwapRequest:
    """One swap attempt against a signed quote."""
    amount_in: int     # 18 decimals
    min_out: int       # 18 decimals
    quote: Quote
    executor: str

    def __post_init__(self):
        if self.amount_in < 0 or self.min_out < 0:
            raise ValueError("Swap amounts must not be negative")
