"""Tests for the on-chain ledger's calldata and revert handling."""

import json
from unittest.mock import patch

import httpx
import pytest
from eth_abi import decode, encode

from smartfx.errors import (
    ActualOutBelowMinOut,
    AuthorizationFailed,
    BadSignature,
    ErrorKind,
    InsufficientLiquidity,
    QuoteAlreadyUsed,
    StaleQuote,
)
from smartfx.ledger.onchain import (
    APPROVE_SELECTOR,
    ERROR_STRING_SELECTOR,
    SWAP_SELECTOR,
    LedgerError,
    OnChainLedger,
    classify_revert,
    decode_revert_reason,
    encode_approve,
    encode_swap_with_proof,
)
from smartfx.quotes.models import Quote, SwapRequest

from conftest import AUTHORITY_ADDRESS, CHAIN_ID, CREAL, CUSD, EXECUTOR_ADDRESS, EXECUTOR_KEY, T0, VERIFIER

_RealAsyncClient = httpx.AsyncClient


def _revert_data(reason: str) -> str:
    return "0x" + (ERROR_STRING_SELECTOR + encode(["string"], [reason])).hex()


def mock_rpc(handler):
    """Route the ledger's JSON-RPC calls to handler(method, params)."""

    def respond(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json=handler(body["method"], body["params"]))

    def factory(*args, **kwargs):
        return _RealAsyncClient(*args, transport=httpx.MockTransport(respond), **kwargs)

    return patch("smartfx.ledger.onchain.httpx.AsyncClient", side_effect=factory)


@pytest.fixture
def onchain_ledger() -> OnChainLedger:
    return OnChainLedger(
        rpc_url="http://rpc.test",
        chain_id=CHAIN_ID,
        contract_address=VERIFIER,
        executor_private_key=EXECUTOR_KEY,
        receipt_timeout=1,
    )


@pytest.fixture
def swap_request() -> SwapRequest:
    quote = Quote(CUSD, CREAL, 510_000_000, T0, b"\x01" * 65)
    return SwapRequest(amount_in=100 * 10**18, min_out=507 * 10**18, quote=quote, executor=EXECUTOR_ADDRESS)


class TestRevertDecoding:
    """Tests for revert reason extraction and classification."""

    def test_decode_error_string(self):
        assert decode_revert_reason(_revert_data("quote already used")) == "quote already used"

    @pytest.mark.parametrize("data", [None, "", "0x", "0xzz", "0x12345678", 42])
    def test_decode_unusable(self, data):
        assert decode_revert_reason(data) is None

    @pytest.mark.parametrize(
        "reason, error_cls",
        [
            ("Quote already used", QuoteAlreadyUsed),
            ("Stale quote", StaleQuote),
            ("Invalid signer", BadSignature),
            ("Slippage: below minOut", ActualOutBelowMinOut),
            ("Insufficient liquidity", InsufficientLiquidity),
            ("ERC20: insufficient allowance", AuthorizationFailed),
        ],
    )
    def test_classify(self, reason, error_cls):
        error = classify_revert(reason)
        assert isinstance(error, error_cls)
        assert str(error) == reason

    def test_classify_unknown(self):
        with pytest.raises(LedgerError):
            classify_revert("out of gas")


class TestCalldata:
    """Tests for ABI-encoded call data."""

    def test_selectors(self):
        assert APPROVE_SELECTOR.hex() == "095ea7b3"
        assert len(SWAP_SELECTOR) == 4

    def test_encode_approve(self):
        data = bytes.fromhex(encode_approve(VERIFIER, 5)[2:])

        assert data[:4] == APPROVE_SELECTOR
        spender, amount = decode(["address", "uint256"], data[4:])
        assert spender.lower() == VERIFIER.lower()
        assert amount == 5

    def test_encode_swap(self, swap_request):
        quote = swap_request.quote
        data = bytes.fromhex(
            encode_swap_with_proof(
                [CUSD, CREAL, 1, 2, quote.rate, quote.timestamp, quote.signature, EXECUTOR_ADDRESS]
            )[2:]
        )

        assert data[:4] == SWAP_SELECTOR
        decoded = decode(
            ["address", "address", "uint256", "uint256", "uint256", "uint256", "bytes", "address"],
            data[4:],
        )
        assert decoded[2:6] == (1, 2, 510_000_000, T0)
        assert decoded[6] == b"\x01" * 65


class TestOnChainLedger:
    """Tests for OnChainLedger against a mocked node."""

    def test_executor_address(self, onchain_ledger):
        assert onchain_ledger.executor_address == EXECUTOR_ADDRESS

    @pytest.mark.asyncio
    async def test_authorize_for_other_owner(self, onchain_ledger):
        with pytest.raises(AuthorizationFailed):
            await onchain_ledger.authorize(AUTHORITY_ADDRESS, VERIFIER, CUSD, 1)

    @pytest.mark.asyncio
    async def test_swap_revert_is_classified(self, onchain_ledger, swap_request):
        calls = []

        def handler(method, params):
            calls.append(method)
            return {
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": 3, "message": "execution reverted", "data": _revert_data("Quote already used")},
            }

        with mock_rpc(handler):
            with pytest.raises(QuoteAlreadyUsed):
                await onchain_ledger.swap_with_proof(swap_request)

        # Nothing broadcast after a failed dry run
        assert calls == ["eth_call"]

    @pytest.mark.asyncio
    async def test_revert_reason_in_message(self, onchain_ledger, swap_request):
        def handler(method, params):
            return {"jsonrpc": "2.0", "id": 1, "error": {"code": 3, "message": "execution reverted: stale quote"}}

        with mock_rpc(handler):
            with pytest.raises(StaleQuote):
                await onchain_ledger.swap_with_proof(swap_request)

    @pytest.mark.asyncio
    async def test_node_error_is_ledger_error(self, onchain_ledger, swap_request):
        def handler(method, params):
            return {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "header not found"}}

        with mock_rpc(handler):
            with pytest.raises(LedgerError):
                await onchain_ledger.swap_with_proof(swap_request)

    @pytest.mark.asyncio
    async def test_swap_broadcasts_after_dry_run(self, onchain_ledger, swap_request):
        calls = []
        txid = "0x" + "cd" * 32

        def handler(method, params):
            calls.append(method)
            results = {
                "eth_call": "0x",
                "eth_getTransactionCount": "0x7",
                "eth_gasPrice": "0x3b9aca00",
                "eth_sendRawTransaction": txid,
                "eth_getTransactionReceipt": {"status": "0x1", "transactionHash": txid},
            }
            return {"jsonrpc": "2.0", "id": 1, "result": results[method]}

        with mock_rpc(handler):
            receipt = await onchain_ledger.swap_with_proof(swap_request)

        assert calls == [
            "eth_call",
            "eth_getTransactionCount",
            "eth_gasPrice",
            "eth_sendRawTransaction",
            "eth_getTransactionReceipt",
        ]
        assert receipt.reference == txid
        assert receipt.amount_out == swap_request.min_out

    @pytest.mark.asyncio
    async def test_approve_failure_is_authorization_failed(self, onchain_ledger):
        def handler(method, params):
            return {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "insufficient funds for gas"}}

        with mock_rpc(handler):
            with pytest.raises(AuthorizationFailed):
                await onchain_ledger.authorize(EXECUTOR_ADDRESS, VERIFIER, CUSD, 1)


class TestMinedRevert:
    """A transaction that passes the dry run but reverts once mined."""

    @staticmethod
    def _handler(replay, calls):
        txid = "0x" + "ef" * 32
        dry_runs = []

        def handler(method, params):
            calls.append((method, params))
            if method == "eth_call":
                dry_runs.append(params)
                if len(dry_runs) == 1:
                    return {"jsonrpc": "2.0", "id": 1, "result": "0x"}
                return replay
            results = {
                "eth_getTransactionCount": "0x7",
                "eth_gasPrice": "0x3b9aca00",
                "eth_sendRawTransaction": txid,
                "eth_getTransactionReceipt": {"status": "0x0", "transactionHash": txid, "blockNumber": "0x10"},
            }
            return {"jsonrpc": "2.0", "id": 1, "result": results[method]}

        return handler

    @pytest.mark.asyncio
    async def test_reason_recovered_from_replay(self, onchain_ledger, swap_request):
        calls = []
        replay = {
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": 3, "message": "execution reverted", "data": _revert_data("Quote already used")},
        }

        with mock_rpc(self._handler(replay, calls)):
            with pytest.raises(QuoteAlreadyUsed):
                await onchain_ledger.swap_with_proof(swap_request)

        method, params = calls[-1]
        assert method == "eth_call"
        assert params[1] == "0x10"

    @pytest.mark.asyncio
    async def test_unexplained_revert(self, onchain_ledger, swap_request):
        replay = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "missing trie node"}}

        with mock_rpc(self._handler(replay, [])):
            with pytest.raises(LedgerError) as exc_info:
                await onchain_ledger.swap_with_proof(swap_request)

        assert "reverted" in str(exc_info.value)
        assert "missing trie node" in str(exc_info.value)
        assert exc_info.value.kind == ErrorKind.SETTLEMENT_FAILED

    @pytest.mark.asyncio
    async def test_replay_succeeds(self, onchain_ledger, swap_request):
        replay = {"jsonrpc": "2.0", "id": 1, "result": "0x"}

        with mock_rpc(self._handler(replay, [])):
            with pytest.raises(LedgerError) as exc_info:
                await onchain_ledger.swap_with_proof(swap_request)

        assert str(exc_info.value) == f"Transaction 0x{'ef' * 32} reverted"
