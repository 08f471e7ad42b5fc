"""Signer factory.

Creates the signing backend based on configuration. Approval-gated signing
needs an operator callback, so it is built by wrapping the configured signer
with with_approval().
"""

import logging
from typing import Optional

from smartfx.config import get_settings
from smartfx.signing.approval import ApprovalCallback, ApprovalSigner
from smartfx.signing.base import SignerBackend, SignerType

logger = logging.getLogger(__name__)

_signer_instance: Optional[SignerBackend] = None


def get_signer_type() -> SignerType:
    """Determine which signer to use from SIGNER_BACKEND."""
    explicit = get_settings().signer_backend.lower()
    try:
        return SignerType(explicit)
    except ValueError:
        raise ValueError(f"Unknown signer backend: {explicit}")


def get_signer() -> SignerBackend:
    """Get the configured signer instance (singleton)."""
    global _signer_instance

    if _signer_instance is not None:
        return _signer_instance

    signer_type = get_signer_type()
    logger.info(f"Initializing {signer_type.value} signer")

    if signer_type != SignerType.LOCAL:
        raise ValueError(f"{signer_type.value} signer must be built with with_approval()")

    from smartfx.signing.local import LocalSigner
    settings = get_settings()
    signer = LocalSigner(private_key=settings.authority_private_key)
    if not settings.authority_private_key:
        logger.warning("AUTHORITY_PRIVATE_KEY not set - local signer has no key")

    _signer_instance = signer
    return _signer_instance


def with_approval(
    approve: ApprovalCallback,
    inner: Optional[SignerBackend] = None,
    timeout: Optional[float] = None,
) -> ApprovalSigner:
    """Wrap a signer so every request needs operator approval."""
    settings = get_settings()
    return ApprovalSigner(
        inner=inner or get_signer(),
        approve=approve,
        timeout=timeout if timeout is not None else settings.signing_timeout_seconds,
    )


def reset_signer():
    """Reset the signer instance (for testing)."""
    global _signer_instance
    _signer_instance = None


async def get_signer_info() -> dict:
    """Get information about the current signer configuration."""
    signer = get_signer()
    health = await signer.health_check()

    return {
        "type": signer.signer_type.value,
        "healthy": health,
        "class": signer.__class__.__name__,
        "address": await signer.get_address(),
    }
