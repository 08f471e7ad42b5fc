"""Operator-approved signing.

Wraps another backend so that every commitment must be confirmed by a
human-operated authority before it is signed. The approval request can be
declined, can time out, or can be cancelled; all three come back as a
rejected SignatureResult rather than an exception.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from smartfx.signing.base import SignatureResult, SignerBackend, SignerType, SigningRequest

logger = logging.getLogger(__name__)

ApprovalCallback = Callable[[SigningRequest], Awaitable[bool]]


class ApprovalSigner(SignerBackend):
    """Signer that asks an operator before delegating to an inner backend."""

    def __init__(
        self,
        inner: SignerBackend,
        approve: ApprovalCallback,
        timeout: Optional[float] = 120.0,
    ):
        super().__init__(SignerType.APPROVAL)
        self.inner = inner
        self.approve = approve
        self.timeout = timeout
        self._pending: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """Whether an approval request is outstanding."""
        return self._pending is not None and not self._pending.done()

    def cancel(self) -> bool:
        """Withdraw the outstanding approval request, if any."""
        if not self.pending:
            return False
        self._pending.cancel()
        return True

    async def sign(self, request: SigningRequest) -> SignatureResult:
        if self.pending:
            return SignatureResult(
                success=False, rejected=True, error="Another signing request is outstanding"
            )

        task = asyncio.ensure_future(self.approve(request))
        self._pending = task
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout)
        finally:
            if not task.done():
                task.cancel()
            self._pending = None

        if not done:
            logger.warning(f"Signing request timed out after {self.timeout}s")
            return SignatureResult(success=False, rejected=True, error="Signing request timed out")

        if task.cancelled():
            logger.info("Signing request cancelled")
            return SignatureResult(success=False, rejected=True, error="Signing request cancelled")

        exc = task.exception()
        if exc is not None:
            logger.error(f"Approval callback failed: {exc}")
            return SignatureResult(success=False, rejected=True, error=str(exc))

        if not task.result():
            logger.info("Signing request declined by authority")
            return SignatureResult(success=False, rejected=True, error="User rejected the request")

        return await self.inner.sign(request)

    async def get_address(self, key_id: str = "authority") -> Optional[str]:
        return await self.inner.get_address(key_id)

    async def health_check(self) -> bool:
        return await self.inner.health_check()
