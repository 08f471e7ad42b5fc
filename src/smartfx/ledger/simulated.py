"""In-process ledger that settles swaps against a signed quote.

Mirrors the verifying contract: the contract holds a pool of each token,
swap_with_proof() pulls amount_in from the executor under an allowance,
verifies and consumes the quote, and pays out at the signed rate minus the
settlement fee. Used for development and tests; no real value moves.
"""

import asyncio
import itertools
import logging

from eth_utils import keccak

from smartfx.errors import ActualOutBelowMinOut, AuthorizationFailed, InsufficientLiquidity
from smartfx.ledger.base import PreparedSettlement, SettlementReceipt, ValueTransferService
from smartfx.quotes.hashing import normalize_address
from smartfx.quotes.models import SwapRequest
from smartfx.quotes.validator import QuoteValidator
from smartfx.slippage import BPS_DENOMINATOR, gross_out

logger = logging.getLogger(__name__)


class SimulatedLedger(ValueTransferService):
    """Token balances, allowances and a quote-verifying swap pool."""

    name = "simulated"

    def __init__(self, validator: QuoteValidator, contract_address: str, fee_bps: int = 0):
        if not 0 <= fee_bps < BPS_DENOMINATOR:
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOMINATOR}), got {fee_bps}")
        self.validator = validator
        self.contract_address = normalize_address(contract_address)
        self.fee_bps = fee_bps
        self._balances: dict[tuple[str, str], int] = {}
        self._allowances: dict[tuple[str, str, str], int] = {}
        self._nonce = itertools.count(1)
        # One settlement at a time: prepare checks must still hold at apply
        self._settlement = asyncio.Lock()

    # Balance operations
    def balance_of(self, token: str, account: str) -> int:
        return self._balances.get((normalize_address(token), normalize_address(account)), 0)

    def allowance(self, token: str, owner: str, spender: str) -> int:
        key = (normalize_address(token), normalize_address(owner), normalize_address(spender))
        return self._allowances.get(key, 0)

    def mint(self, token: str, account: str, amount: int) -> int:
        """Credit amount of token to account."""
        if amount < 0:
            raise ValueError("Cannot mint a negative amount")
        key = (normalize_address(token), normalize_address(account))
        self._balances[key] = self._balances.get(key, 0) + amount
        return self._balances[key]

    def fund_pool(self, token: str, amount: int) -> int:
        """Add liquidity of token to the contract's pool."""
        return self.mint(token, self.contract_address, amount)

    def _transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        self._balances[(token, sender)] = self._balances.get((token, sender), 0) - amount
        self._balances[(token, recipient)] = self._balances.get((token, recipient), 0) + amount

    # Value-transfer primitives
    async def authorize(self, owner: str, spender: str, token: str, amount: int) -> str:
        owner, spender, token = (normalize_address(a) for a in (owner, spender, token))

        if amount < 0:
            raise AuthorizationFailed("Cannot authorize a negative amount")
        available = self.balance_of(token, owner)
        if available < amount:
            raise AuthorizationFailed(f"Insufficient balance: have {available}, need {amount}")

        self._allowances[(token, owner, spender)] = amount
        logger.debug(f"Authorized {spender} to spend {amount} of {token} for {owner}")
        return "0x" + keccak(b"approve" + next(self._nonce).to_bytes(32, "big")).hex()

    async def swap_with_proof(self, request: SwapRequest) -> SettlementReceipt:
        quote = request.quote
        executor = normalize_address(request.executor)
        from_token = normalize_address(quote.from_token)
        to_token = normalize_address(quote.to_token)
        contract = self.contract_address

        async def prepare() -> PreparedSettlement:
            amount_in = request.amount_in
            if self.allowance(from_token, executor, contract) < amount_in:
                raise AuthorizationFailed("Allowance below amount_in")
            if self.balance_of(from_token, executor) < amount_in:
                raise AuthorizationFailed("Executor balance below amount_in")

            gross = gross_out(amount_in, quote.rate)
            actual_out = gross * (BPS_DENOMINATOR - self.fee_bps) // BPS_DENOMINATOR
            if actual_out < request.min_out:
                raise ActualOutBelowMinOut(f"Settlement output {actual_out} below min_out {request.min_out}")

            pool = self.balance_of(to_token, contract)
            if pool < actual_out:
                raise InsufficientLiquidity(f"Pool holds {pool}, swap needs {actual_out}")

            reference = "0x" + keccak(quote.signature + next(self._nonce).to_bytes(32, "big")).hex()

            def apply() -> None:
                self._allowances[(from_token, executor, contract)] -= amount_in
                self._transfer(from_token, executor, contract, amount_in)
                self._transfer(to_token, contract, executor, actual_out)

            return PreparedSettlement(
                amount_in=amount_in,
                amount_out=actual_out,
                reference=reference,
                apply=apply,
            )

        async with self._settlement:
            return await self.validator.consume(quote, executor, prepare)
