"""Tests for the FastAPI endpoints."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from smartfx.api.app import create_app
from smartfx.api.contracts import QuoteRecord
from smartfx.services.swap_orchestrator import reset_orchestrator

from conftest import CREAL, CUSD, T0


@pytest_asyncio.fixture
async def client(orchestrator):
    """Async test client backed by the fixture orchestrator."""
    reset_orchestrator(orchestrator)
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _signed_quote(client) -> dict:
    response = await client.post("/api/v1/quotes/sign", json={"rate": 5.1})
    return response.json()["quote"]


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "smartfx"

    @pytest.mark.asyncio
    async def test_detailed_health(self, client):
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["config"]["protocol"]["chain_id"] == 44787
        assert data["config"]["signer"]["authority_key"] == "***"
        assert data["signer"]["type"] == "local"


class TestRateEndpoints:

    @pytest.mark.asyncio
    async def test_get_rate(self, client):
        response = await client.get("/api/v1/rates")

        data = response.json()
        assert data["success"] is True
        assert data["rate"] == 5.1
        assert data["base"] == "USD"
        assert data["symbol"] == "BRL"
        assert data["source"] == "manual"

    @pytest.mark.asyncio
    async def test_rate_unavailable(self, client, orchestrator):
        orchestrator.rate_provider.set_rate(None)

        data = (await client.get("/api/v1/rates")).json()

        assert data["success"] is False
        assert data["rate"] is None


class TestQuoteEndpoints:
    """Tests for signing, verifying and min-out endpoints."""

    @pytest.mark.asyncio
    async def test_sign(self, client):
        response = await client.post("/api/v1/quotes/sign", json={"rate": 5.1})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        quote = data["quote"]
        assert quote["fromToken"] == CUSD
        assert quote["toToken"] == CREAL
        assert quote["rate"] == "5.1"
        assert quote["timestamp"] == T0
        assert quote["signature"].startswith("0x")
        assert len(quote["signature"]) == 132

    @pytest.mark.asyncio
    async def test_sign_with_fetched_rate(self, client):
        data = (await client.post("/api/v1/quotes/sign", json={})).json()

        assert data["success"] is True
        assert data["quote"]["rate"] == "5.1"

    @pytest.mark.asyncio
    async def test_sign_without_any_rate(self, client, orchestrator):
        orchestrator.rate_provider.set_rate(None)

        data = (await client.post("/api/v1/quotes/sign", json={})).json()

        assert data["success"] is False
        assert data["error"] == "Fetch or enter a rate first"

    @pytest.mark.asyncio
    async def test_sign_rejects_non_positive_rate(self, client):
        response = await client.post("/api/v1/quotes/sign", json={"rate": 0})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_verify(self, client, clock):
        quote = await _signed_quote(client)

        data = (await client.post("/api/v1/quotes/verify", json={"quote": quote})).json()
        assert data["success"] is True
        assert data["state"] == "valid"

        clock.now = T0 + 301
        data = (await client.post("/api/v1/quotes/verify", json={"quote": quote})).json()
        assert data["state"] == "expired"

    @pytest.mark.asyncio
    async def test_verify_tampered(self, client):
        quote = await _signed_quote(client)
        quote["rate"] = "6"

        data = (await client.post("/api/v1/quotes/verify", json={"quote": quote})).json()

        assert data["state"] == "rejected"

    @pytest.mark.asyncio
    async def test_verify_malformed(self, client):
        quote = await _signed_quote(client)
        quote["signature"] = "0xnothex"

        data = (await client.post("/api/v1/quotes/verify", json={"quote": quote})).json()

        assert data["success"] is False
        assert data["error_kind"] == "parse_error"

    @pytest.mark.asyncio
    async def test_min_out(self, client):
        response = await client.post(
            "/api/v1/quotes/min-out", json={"amount": "100", "rate": "5.1"}
        )

        data = response.json()
        assert data["success"] is True
        assert data["amount_in"] == "100"
        assert data["min_out"] == "507.45"
        assert data["min_out_units"] == "507450000000000000000"

    @pytest.mark.asyncio
    async def test_min_out_invalid_slippage(self, client):
        data = (
            await client.post(
                "/api/v1/quotes/min-out",
                json={"amount": "100", "rate": "5.1", "slippage_bps": 10000},
            )
        ).json()

        assert data["success"] is False
        assert data["error_kind"] == "invalid_slippage"

    @pytest.mark.asyncio
    async def test_min_out_bad_amount(self, client):
        data = (
            await client.post("/api/v1/quotes/min-out", json={"amount": "", "rate": "5.1"})
        ).json()

        assert data["success"] is False
        assert data["error_kind"] == "parse_error"


class TestSwapEndpoints:
    """Tests for the swap endpoint."""

    @pytest.mark.asyncio
    async def test_swap(self, client, clock):
        quote = await _signed_quote(client)
        clock.now = T0 + 100

        response = await client.post("/api/v1/swaps", json={"amount": "100", "quote": quote})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["amount_in"] == "100"
        assert data["min_out"] == "507.45"
        assert data["amount_out"] == "510"
        assert data["settlement_ref"].startswith("0x")

    @pytest.mark.asyncio
    async def test_swap_replay(self, client):
        quote = await _signed_quote(client)
        await client.post("/api/v1/swaps", json={"amount": "100", "quote": quote})

        data = (await client.post("/api/v1/swaps", json={"amount": "100", "quote": quote})).json()

        assert data["success"] is False
        assert data["error_kind"] == "quote_already_used"

    @pytest.mark.asyncio
    async def test_swap_stale(self, client, clock):
        quote = await _signed_quote(client)
        clock.now = T0 + 310

        data = (await client.post("/api/v1/swaps", json={"amount": "100", "quote": quote})).json()

        assert data["success"] is False
        assert data["error_kind"] == "stale_quote"
        assert data["amount_out"] is None

    @pytest.mark.asyncio
    async def test_swap_malformed_quote(self, client):
        quote = await _signed_quote(client)
        quote["fromToken"] = "0x1234"

        data = (await client.post("/api/v1/swaps", json={"amount": "100", "quote": quote})).json()

        assert data["success"] is False
        assert data["error_kind"] == "parse_error"


class TestQuoteRecord:

    @pytest.mark.asyncio
    async def test_round_trip(self, orchestrator):
        quote = (await orchestrator.sign_quote(5.1)).quote

        record = QuoteRecord.from_quote(quote)

        assert record.to_quote() == quote
        assert record.model_dump(by_alias=True) == quote.to_record()
