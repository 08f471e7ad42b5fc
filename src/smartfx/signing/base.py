"""Base interfaces for quote signing.

Signing flow:
1. Build the commitment hash for a quote
2. Submit it to a signer backend with a key identifier
3. The backend applies the personal-message prefix and signs
4. The backend returns a SignatureResult: a signature or a rejection

Backends never expose raw private keys. Which key may sign is not enforced
here; the verifier checks the recovered address.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class SignerType(str, Enum):
    """Type of signing backend."""
    LOCAL = "local"           # Authority key in memory
    APPROVAL = "approval"     # Wraps another backend behind an operator decision


@dataclass
class SigningRequest:
    """Request to sign a commitment hash.

    Attributes:
        message_hash: 32-byte commitment hash
        key_id: Identifier for the signing key
        metadata: Optional quote fields shown to the operator and audit log
    """
    message_hash: bytes
    key_id: str = "authority"
    metadata: Optional[dict] = None

    def __post_init__(self):
        if len(self.message_hash) != 32:
            raise ValueError("message_hash must be 32 bytes")


@dataclass
class SignatureResult:
    """Result of a signing request.

    Attributes:
        success: Whether a signature was produced
        signature: 65-byte signature (r || s || v)
        signer_address: Address of the key that signed
        rejected: True when the authority declined, timed out or was cancelled
        error: Error message if signing failed
    """
    success: bool
    signature: Optional[bytes] = None
    signer_address: Optional[str] = None
    rejected: bool = False
    error: Optional[str] = None


class SignerBackend(ABC):
    """Abstract base class for signing backends."""

    def __init__(self, signer_type: SignerType):
        self.signer_type = signer_type

    @abstractmethod
    async def sign(self, request: SigningRequest) -> SignatureResult:
        """Sign a commitment hash using the personal-message convention.

        Args:
            request: Signing request with the 32-byte hash

        Returns:
            SignatureResult with the signature or the reason it is missing
        """
        pass

    @abstractmethod
    async def get_address(self, key_id: str = "authority") -> Optional[str]:
        """Get the address of the key that would sign for key_id."""
        pass

    async def health_check(self) -> bool:
        """Check if the signing backend is available."""
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.signer_type.value})"


class SigningError(Exception):
    """Exception raised when signing fails."""
    pass


class KeyNotFoundError(SigningError):
    """Exception raised when signing key is not found."""
    pass
