"""Quote signing backends.

- LocalSigner: authority key held in memory
- ApprovalSigner: operator confirmation in front of another backend
"""

from smartfx.signing.approval import ApprovalSigner
from smartfx.signing.base import (
    SignatureResult,
    SignerBackend,
    SigningRequest,
)
from smartfx.signing.factory import get_signer, with_approval
from smartfx.signing.local import LocalSigner

__all__ = [
    "SignatureResult",
    "SignerBackend",
    "SigningRequest",
    "LocalSigner",
    "ApprovalSigner",
    "get_signer",
    "with_approval",
]
