"""On-chain ledger: ERC-20 approve plus the verifying contract's swapWithProof.

Transactions are built by hand, signed with eth-account and broadcast over
JSON-RPC. Before a swap is broadcast it is simulated with eth_call so that a
revert comes back with its reason, which is mapped to an error kind.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx
from eth_abi import decode, encode
from eth_account import Account
from web3 import Web3

from smartfx.errors import (
    ActualOutBelowMinOut,
    AuthorizationFailed,
    BadSignature,
    InsufficientLiquidity,
    LedgerError,
    QuoteAlreadyUsed,
    SmartFXError,
    StaleQuote,
)
from smartfx.ledger.base import SettlementReceipt, ValueTransferService
from smartfx.quotes.models import SwapRequest

logger = logging.getLogger(__name__)

APPROVE_SELECTOR = bytes(Web3.keccak(text="approve(address,uint256)")[:4])
SWAP_SELECTOR = bytes(Web3.keccak(
    text="swapWithProof(address,address,uint256,uint256,uint256,uint256,bytes,address)"
)[:4])
ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")

APPROVE_GAS = 100_000
SWAP_GAS = 350_000

# Revert reason keyword -> error class, checked in order
REVERT_REASONS: list[tuple[tuple[str, ...], type[SmartFXError]]] = [
    (("used", "replay"), QuoteAlreadyUsed),
    (("stale", "expired"), StaleQuote),
    (("sig", "signer"), BadSignature),
    (("slippage", "minout", "min out"), ActualOutBelowMinOut),
    (("liquidity", "reserve"), InsufficientLiquidity),
    (("allowance", "balance", "transfer"), AuthorizationFailed),
]


def decode_revert_reason(data: Any) -> Optional[str]:
    """Extract the Error(string) reason from revert data, if present."""
    if not isinstance(data, str) or not data.startswith("0x"):
        return None
    try:
        raw = bytes.fromhex(data[2:])
    except ValueError:
        return None
    if raw[:4] != ERROR_STRING_SELECTOR:
        return None
    try:
        return decode(["string"], raw[4:])[0]
    except Exception:
        return None


def classify_revert(reason: str) -> SmartFXError:
    """Map a contract revert reason to the matching protocol error."""
    lowered = reason.lower()
    for keywords, error_cls in REVERT_REASONS:
        if any(k in lowered for k in keywords):
            return error_cls(reason)
    raise LedgerError(f"Unrecognized revert: {reason}")


def encode_approve(spender: str, amount: int) -> str:
    return "0x" + (
        APPROVE_SELECTOR + encode(["address", "uint256"], [Web3.to_checksum_address(spender), amount])
    ).hex()


def encode_swap_with_proof(contract_args: list) -> str:
    return "0x" + (
        SWAP_SELECTOR
        + encode(
            ["address", "address", "uint256", "uint256", "uint256", "uint256", "bytes", "address"],
            contract_args,
        )
    ).hex()


class OnChainLedger(ValueTransferService):
    """Settles swaps through the deployed verifying contract."""

    name = "onchain"

    def __init__(
        self,
        rpc_url: str,
        chain_id: int,
        contract_address: str,
        executor_private_key: str,
        receipt_timeout: float = 60.0,
    ):
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.contract_address = Web3.to_checksum_address(contract_address)
        self._account = Account.from_key(executor_private_key)
        self.receipt_timeout = receipt_timeout

    @property
    def executor_address(self) -> str:
        return self._account.address

    async def _rpc(self, method: str, params: list) -> Any:
        """Call a JSON-RPC method, returning result or raising on error."""
        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(
                    self.rpc_url,
                    json={"jsonrpc": "2.0", "method": method, "params": params, "id": 1},
                )
        except httpx.HTTPError as e:
            raise LedgerError(f"RPC {method} failed: {e}") from e

        if response.status_code != 200:
            raise LedgerError(f"RPC {method} returned HTTP {response.status_code}")

        data = response.json()
        if "error" in data:
            error = data["error"]
            reason = decode_revert_reason(error.get("data"))
            message = error.get("message", "")
            if reason is None and "execution reverted" in message:
                reason = message.split("execution reverted", 1)[1].lstrip(": ").strip() or None
            if reason is not None:
                raise classify_revert(reason)
            raise LedgerError(f"RPC {method} error: {message or error}")
        return data.get("result")

    async def _send(self, to: str, data: str, gas: int) -> str:
        """Sign and broadcast a transaction, returning its hash once mined."""
        nonce = int(await self._rpc("eth_getTransactionCount", [self.executor_address, "pending"]), 16)
        gas_price = int(await self._rpc("eth_gasPrice", []), 16)

        tx = {
            "nonce": nonce,
            "gasPrice": gas_price,
            "gas": gas,
            "to": Web3.to_checksum_address(to),
            "value": 0,
            "data": data,
            "chainId": self.chain_id,
        }
        signed = self._account.sign_transaction(tx)
        raw_hex = signed.raw_transaction.hex()
        if not raw_hex.startswith("0x"):
            raw_hex = "0x" + raw_hex

        txid = await self._rpc("eth_sendRawTransaction", [raw_hex])
        logger.info(f"Broadcast tx {txid}")
        receipt = await self._wait_for_receipt(txid)
        if int(receipt.get("status", "0x0"), 16) != 1:
            detail = await self._replay_revert(to, data, receipt.get("blockNumber") or "latest")
            raise LedgerError(f"Transaction {txid} reverted" + (f" ({detail})" if detail else ""))
        return txid

    async def _replay_revert(self, to: str, data: str, block: str) -> Optional[str]:
        """Re-run a reverted transaction with eth_call at its block.

        A recognized revert reason is raised as its protocol error. Anything
        else comes back as text for the generic failure.
        """
        try:
            await self._rpc(
                "eth_call",
                [{"from": self.executor_address, "to": Web3.to_checksum_address(to), "data": data}, block],
            )
        except LedgerError as e:
            logger.warning(f"Replay of reverted transaction failed: {e}")
            return str(e)
        return None

    async def _wait_for_receipt(self, txid: str) -> dict:
        elapsed = 0.0
        while elapsed < self.receipt_timeout:
            receipt = await self._rpc("eth_getTransactionReceipt", [txid])
            if receipt:
                return receipt
            await asyncio.sleep(2)
            elapsed += 2
        raise LedgerError(f"No receipt for {txid} after {self.receipt_timeout}s")

    async def authorize(self, owner: str, spender: str, token: str, amount: int) -> str:
        if Web3.to_checksum_address(owner) != self.executor_address:
            raise AuthorizationFailed("Only the executor account can authorize spending")
        try:
            return await self._send(token, encode_approve(spender, amount), APPROVE_GAS)
        except LedgerError as e:
            raise AuthorizationFailed(str(e)) from e

    async def swap_with_proof(self, request: SwapRequest) -> SettlementReceipt:
        quote = request.quote
        data = encode_swap_with_proof(
            [
                Web3.to_checksum_address(quote.from_token),
                Web3.to_checksum_address(quote.to_token),
                request.amount_in,
                request.min_out,
                quote.rate,
                quote.timestamp,
                quote.signature,
                Web3.to_checksum_address(request.executor),
            ]
        )

        # Dry run surfaces the revert reason without spending gas
        await self._rpc(
            "eth_call",
            [{"from": self.executor_address, "to": self.contract_address, "data": data}, "latest"],
        )

        txid = await self._send(self.contract_address, data, SWAP_GAS)
        return SettlementReceipt(
            reference=txid,
            amount_in=request.amount_in,
            amount_out=request.min_out,  # lower bound; exact output is in the event log
            executor=request.executor,
        )
