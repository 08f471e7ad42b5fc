"""Pytest configuration and fixtures."""

import os

import pytest
import pytest_asyncio
from eth_account import Account
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Well-known development keys; never hold value
AUTHORITY_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
EXECUTOR_KEY = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"
OTHER_KEY = "0x7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6"

AUTHORITY_ADDRESS = Account.from_key(AUTHORITY_KEY).address
EXECUTOR_ADDRESS = Account.from_key(EXECUTOR_KEY).address

VERIFIER = "0x000000000000000000000000000000000000fE0F"
CUSD = "0x874069Fa1Eb16D44d622F2e0Ca25eeA172369bC1"
CREAL = "0xE4D517785D091D3c54818832dB6094bcc2744545"
CHAIN_ID = 44787

T0 = 1_700_000_000
ONE = 10**18

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["CHAIN_ID"] = str(CHAIN_ID)
os.environ["VERIFYING_CONTRACT"] = VERIFIER
os.environ["FROM_TOKEN"] = CUSD
os.environ["TO_TOKEN"] = CREAL
os.environ["AUTHORITY_ADDRESS"] = ""
os.environ["AUTHORITY_PRIVATE_KEY"] = AUTHORITY_KEY
os.environ["EXECUTOR_PRIVATE_KEY"] = EXECUTOR_KEY
os.environ["SIGNER_BACKEND"] = "local"
os.environ["LEDGER_BACKEND"] = "simulated"
os.environ["CONSUMPTION_STORE"] = "memory"
os.environ["SIMULATED_EXECUTOR_BALANCE"] = "1000"
os.environ["SIMULATED_POOL_LIQUIDITY"] = "100000"
os.environ["FX_API_URL"] = "http://fx.test/latest"

from smartfx.ledger.consumption import InMemoryConsumptionStore, SqlConsumptionStore
from smartfx.ledger.database import create_engine_for, init_db
from smartfx.ledger.simulated import SimulatedLedger
from smartfx.quotes.hashing import QuoteHasher
from smartfx.quotes.issuer import QuoteIssuer
from smartfx.quotes.validator import QuoteValidator
from smartfx.rates.static import StaticRateProvider
from smartfx.services.swap_orchestrator import SwapOrchestrator, reset_orchestrator
from smartfx.signing.factory import reset_signer
from smartfx.signing.local import LocalSigner
from smartfx.utils.locks import clear_quote_locks


class FakeClock:
    """Settable clock returning unix seconds."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> float:
        return float(self.now)


@pytest.fixture(autouse=True)
def reset_globals():
    """Drop process-wide singletons between tests."""
    clear_quote_locks()
    reset_signer()
    reset_orchestrator()
    yield
    clear_quote_locks()
    reset_signer()
    reset_orchestrator()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> QuoteHasher:
    return QuoteHasher(chain_id=CHAIN_ID, verifier=VERIFIER)


@pytest.fixture
def authority_signer() -> LocalSigner:
    return LocalSigner(private_key=AUTHORITY_KEY)


@pytest.fixture
def store() -> InMemoryConsumptionStore:
    return InMemoryConsumptionStore()


@pytest.fixture
def validator(hasher, store, clock) -> QuoteValidator:
    return QuoteValidator(
        hasher=hasher,
        authority=AUTHORITY_ADDRESS,
        store=store,
        clock=clock,
    )


@pytest.fixture
def issuer(hasher, authority_signer, clock) -> QuoteIssuer:
    return QuoteIssuer(
        hasher=hasher,
        signer=authority_signer,
        from_token=CUSD,
        to_token=CREAL,
        clock=clock,
    )


@pytest.fixture
def ledger(validator) -> SimulatedLedger:
    """Simulated ledger with 1000 cUSD for the executor and 100000 cREAL pooled."""
    ledger = SimulatedLedger(validator=validator, contract_address=VERIFIER)
    ledger.mint(CUSD, EXECUTOR_ADDRESS, 1000 * ONE)
    ledger.fund_pool(CREAL, 100_000 * ONE)
    return ledger


@pytest.fixture
def orchestrator(issuer, ledger, validator) -> SwapOrchestrator:
    return SwapOrchestrator(
        issuer=issuer,
        ledger=ledger,
        executor=EXECUTOR_ADDRESS,
        spender=VERIFIER,
        rate_provider=StaticRateProvider(5.1),
        validator=validator,
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite engine with the consumption tables."""
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path}/consumed.db")
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(db_engine) -> SqlConsumptionStore:
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return SqlConsumptionStore(session_factory)
