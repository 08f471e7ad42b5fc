"""SQLAlchemy models for the consumption record."""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ConsumedQuote(Base):
    """A quote that has been used by a settled swap.

    Presence of a row means "already used". The unique signature column is
    what makes concurrent consumers serialize at the database.
    """

    __tablename__ = "consumed_quotes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    signature: Mapped[str] = mapped_column(String(132), unique=True, nullable=False, index=True)
    from_token: Mapped[str] = mapped_column(String(42), nullable=False)
    to_token: Mapped[str] = mapped_column(String(42), nullable=False)
    # uint256 values kept as decimal text; SQLite numerics lose precision
    rate: Mapped[str] = mapped_column(String(78), nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    executor: Mapped[str] = mapped_column(String(42), nullable=False)
    amount_in: Mapped[str] = mapped_column(String(78), nullable=False)
    amount_out: Mapped[str] = mapped_column(String(78), nullable=False)
    settlement_ref: Mapped[Optional[str]] = mapped_column(String(66), nullable=True)
    consumed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
