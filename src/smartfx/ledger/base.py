"""Abstract value-transfer interface.

A ledger exposes two primitives:
- authorize(): let a spender pull an amount of a token from an owner
- swap_with_proof(): verify a signed quote, consume it and exchange value

Simulated and on-chain implementations live in sibling modules.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable

from smartfx.quotes.models import SwapRequest

logger = logging.getLogger(__name__)


@dataclass
class PreparedSettlement:
    """A swap whose value movement has been checked but not yet applied.

    apply() must not fail: every condition that could abort the transfer is
    checked while preparing.
    """
    amount_in: int
    amount_out: int
    reference: str
    apply: Callable[[], None] = field(repr=False)


@dataclass
class SettlementReceipt:
    """Result of a settled swap."""
    reference: str     # Transaction hash or simulated settlement id
    amount_in: int
    amount_out: int
    executor: str


class ValueTransferService(ABC):
    """The consuming ledger."""

    name: str = "ledger"

    @abstractmethod
    async def authorize(self, owner: str, spender: str, token: str, amount: int) -> str:
        """Allow spender to move amount of token on behalf of owner.

        Returns:
            Authorization reference

        Raises:
            AuthorizationFailed: If the authorization is denied
        """
        pass

    @abstractmethod
    async def swap_with_proof(self, request: SwapRequest) -> SettlementReceipt:
        """Verify the quote, consume it and exchange value in one operation.

        Raises:
            BadSignature, StaleQuote, QuoteAlreadyUsed, AuthorizationFailed,
            InsufficientLiquidity, ActualOutBelowMinOut
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
