"""SQLAlchemy table for persisted matches.

The two partial unique indexes are the atomic guard of the reconciliation
invariants: at most one confirmed row per transaction and per record,
whatever the number of concurrent writers.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, Index, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from ...storage.database.base import Base
from ..domain.enums import MatchStatus, MatchType, RecordType

_CONFIRMED = text("status = 'CONFIRMED'")


class InvoiceTransactionMatch(Base):
    """Persisted transaction ↔ record association.

    Attributes:
        id: Match identifier (UUID string)
        transaction_id: Bank transaction identifier
        record_id: Invoice / income / expense identifier
        record_type: Type of the record, when known
        status: SUGGESTED / CONFIRMED (rejected rows are deleted)
        match_type: SUGGESTED / MANUAL / AUTO
        confidence: Score behind a system suggestion
        reasons: Reason tags as a JSON list
        matched_at: Confirmation timestamp
    """

    __tablename__ = "invoice_transaction_matches"
    __table_args__ = (
        UniqueConstraint("transaction_id", "record_id", name="uq_matches_transaction_record"),
        Index(
            "uq_matches_confirmed_transaction",
            "transaction_id",
            unique=True,
            sqlite_where=_CONFIRMED,
            postgresql_where=_CONFIRMED,
        ),
        Index(
            "uq_matches_confirmed_record",
            "record_id",
            unique=True,
            sqlite_where=_CONFIRMED,
            postgresql_where=_CONFIRMED,
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    transaction_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    record_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    record_type: Mapped[RecordType | None] = mapped_column(Enum(RecordType))

    status: Mapped[MatchStatus] = mapped_column(
        Enum(MatchStatus), nullable=False, default=MatchStatus.SUGGESTED, index=True
    )
    match_type: Mapped[MatchType] = mapped_column(
        Enum(MatchType), nullable=False, default=MatchType.SUGGESTED
    )

    confidence: Mapped[float | None] = mapped_column()
    reasons: Mapped[list | None] = mapped_column(JSON)
    matched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return (
            f"<InvoiceTransactionMatch(id={self.id}, "
            f"transaction_id='{self.transaction_id}', "
            f"record_id='{self.record_id}', "
            f"status='{self.status.value}')>"
        )
