"""Ledger module: value transfer and the consumption record.

Concrete ledgers (simulated, onchain) import the quote validator and are
loaded through smartfx.ledger.factory.
"""

from smartfx.ledger.base import PreparedSettlement, SettlementReceipt, ValueTransferService
from smartfx.ledger.consumption import (
    ConsumptionRecord,
    ConsumptionStore,
    InMemoryConsumptionStore,
    SqlConsumptionStore,
)
from smartfx.ledger.models import Base, ConsumedQuote

__all__ = [
    "PreparedSettlement",
    "SettlementReceipt",
    "ValueTransferService",
    "ConsumptionRecord",
    "ConsumptionStore",
    "InMemoryConsumptionStore",
    "SqlConsumptionStore",
    "Base",
    "ConsumedQuote",
]
