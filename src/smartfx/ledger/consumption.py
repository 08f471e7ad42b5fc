"""Consumption record: which quotes have already been used.

The store offers get / set-if-absent semantics. put_if_absent() is the
single point that decides whether a quote is consumed, so only one caller
can ever win it for a given key.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from smartfx.ledger.models import ConsumedQuote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsumptionRecord:
    """What is remembered about a consumed quote."""
    key: str
    from_token: str
    to_token: str
    rate: int
    timestamp: int
    executor: str
    amount_in: int
    amount_out: int
    settlement_ref: Optional[str] = None


class ConsumptionStore(ABC):
    """Durable, serializing storage for the consumption record."""

    @abstractmethod
    async def get(self, key: str) -> Optional[ConsumptionRecord]:
        """Return the record for key, or None if the quote is unused."""
        pass

    @abstractmethod
    async def put_if_absent(self, record: ConsumptionRecord) -> bool:
        """Write the record unless one exists.

        Returns:
            True if this call wrote the record, False if it already existed
        """
        pass

    async def is_consumed(self, key: str) -> bool:
        return await self.get(key) is not None


class InMemoryConsumptionStore(ConsumptionStore):
    """Process-local store for tests and the simulated ledger."""

    def __init__(self):
        self._records: dict[str, ConsumptionRecord] = {}

    async def get(self, key: str) -> Optional[ConsumptionRecord]:
        return self._records.get(key)

    async def put_if_absent(self, record: ConsumptionRecord) -> bool:
        # No await between check and set: atomic on the event loop
        if record.key in self._records:
            return False
        self._records[record.key] = record
        return True

    def __len__(self) -> int:
        return len(self._records)


class SqlConsumptionStore(ConsumptionStore):
    """Store backed by the consumed_quotes table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[ConsumptionRecord]:
        async with self.session_factory() as session:
            stmt = select(ConsumedQuote).where(ConsumedQuote.signature == key)
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()

        if row is None:
            return None
        return ConsumptionRecord(
            key=row.signature,
            from_token=row.from_token,
            to_token=row.to_token,
            rate=int(row.rate),
            timestamp=row.timestamp,
            executor=row.executor,
            amount_in=int(row.amount_in),
            amount_out=int(row.amount_out),
            settlement_ref=row.settlement_ref,
        )

    async def put_if_absent(self, record: ConsumptionRecord) -> bool:
        async with self.session_factory() as session:
            session.add(
                ConsumedQuote(
                    signature=record.key,
                    from_token=record.from_token,
                    to_token=record.to_token,
                    rate=str(record.rate),
                    timestamp=record.timestamp,
                    executor=record.executor,
                    amount_in=str(record.amount_in),
                    amount_out=str(record.amount_out),
                    settlement_ref=record.settlement_ref,
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.info(f"Quote {record.key[:18]}... already recorded as consumed")
                return False
        return True


def get_consumption_store() -> ConsumptionStore:
    """Build the store selected by CONSUMPTION_STORE."""
    from smartfx.config import get_settings

    backend = get_settings().consumption_store.lower()
    if backend == "memory":
        return InMemoryConsumptionStore()
    if backend == "database":
        from smartfx.ledger.database import get_session_factory
        return SqlConsumptionStore(get_session_factory())
    raise ValueError(f"Unknown consumption store: {backend}")
