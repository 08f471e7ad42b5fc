"""Ledger factory.

Creates the value-transfer service selected by LEDGER_BACKEND.
"""

import logging
from typing import Optional

from smartfx.config import Settings, get_settings
from smartfx.ledger.base import ValueTransferService
from smartfx.quotes.validator import QuoteValidator

logger = logging.getLogger(__name__)


def create_ledger(
    validator: QuoteValidator,
    settings: Optional[Settings] = None,
) -> ValueTransferService:
    """Build the configured ledger.

    The simulated ledger consumes quotes through the given validator. The
    on-chain ledger leaves verification and consumption to the contract.
    """
    settings = settings or get_settings()
    backend = settings.ledger_backend.lower()

    if backend == "simulated":
        from smartfx.ledger.simulated import SimulatedLedger
        logger.info("Using simulated ledger")
        return SimulatedLedger(
            validator=validator,
            contract_address=settings.verifying_contract,
            fee_bps=settings.settlement_fee_bps,
        )

    if backend == "onchain":
        if not settings.executor_private_key:
            raise ValueError("EXECUTOR_PRIVATE_KEY is required for the on-chain ledger")
        from smartfx.ledger.onchain import OnChainLedger
        logger.info(f"Using on-chain ledger at {settings.rpc_url}")
        return OnChainLedger(
            rpc_url=settings.rpc_url,
            chain_id=settings.chain_id,
            contract_address=settings.verifying_contract,
            executor_private_key=settings.executor_private_key,
        )

    raise ValueError(f"Unknown ledger backend: {backend}")
