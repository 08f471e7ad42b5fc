"""Canonical commitment hash for rate quotes.

hash = keccak256(abi.encode(
    bytes32 version, uint256 chainId, address verifier,
    address fromToken, address toToken, uint256 rate, uint256 timestamp
))

Every field is a fixed 32-byte ABI word, so two different field tuples can
never encode to the same bytes.
"""

from typing import Optional

from eth_abi import encode
from eth_utils import is_address, keccak, to_checksum_address

from smartfx.config import Settings, get_settings

COMMITMENT_TYPES = ["bytes32", "uint256", "address", "address", "address", "uint256", "uint256"]

DEFAULT_PROTOCOL_NAME = "CELOFX_RATE_V1"

UINT256_MAX = 2**256 - 1


def version_sentinel(protocol_name: str = DEFAULT_PROTOCOL_NAME) -> bytes:
    """Digest of the protocol name, separating commitment versions."""
    return keccak(text=protocol_name)


def normalize_address(address: str) -> str:
    """Return the checksummed form of an address.

    Raises:
        ValueError: If the value is not a 20-byte hex address
    """
    if not isinstance(address, str) or not is_address(address.lower()):
        raise ValueError(f"Invalid address: {address!r}")
    return to_checksum_address(address.lower())


def _check_uint(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"{name} out of uint256 range: {value}")
    return value


def commitment_hash(
    version: bytes,
    chain_id: int,
    verifier: str,
    from_token: str,
    to_token: str,
    rate_fixed: int,
    timestamp: int,
) -> bytes:
    """Build the 32-byte commitment hash for a quote."""
    if len(version) != 32:
        raise ValueError("version sentinel must be 32 bytes")

    encoded = encode(
        COMMITMENT_TYPES,
        [
            version,
            _check_uint("chain_id", chain_id),
            normalize_address(verifier),
            normalize_address(from_token),
            normalize_address(to_token),
            _check_uint("rate", rate_fixed),
            _check_uint("timestamp", timestamp),
        ],
    )
    return keccak(encoded)


class QuoteHasher:
    """Commitment hasher bound to one chain and verifying contract."""

    def __init__(
        self,
        chain_id: int,
        verifier: str,
        protocol_name: str = DEFAULT_PROTOCOL_NAME,
    ):
        self.chain_id = chain_id
        self.verifier = normalize_address(verifier)
        self.protocol_name = protocol_name
        self.version = version_sentinel(protocol_name)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "QuoteHasher":
        settings = settings or get_settings()
        return cls(
            chain_id=settings.chain_id,
            verifier=settings.verifying_contract,
            protocol_name=settings.protocol_name,
        )

    def hash_quote(self, from_token: str, to_token: str, rate_fixed: int, timestamp: int) -> bytes:
        return commitment_hash(
            self.version,
            self.chain_id,
            self.verifier,
            from_token,
            to_token,
            rate_fixed,
            timestamp,
        )

    def __repr__(self) -> str:
        return f"QuoteHasher(chain_id={self.chain_id}, verifier={self.verifier}, protocol={self.protocol_name})"
