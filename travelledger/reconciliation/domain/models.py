"""Domain models for bank reconciliation.

- Transaction: one bank movement, signed amount
- Record: invoice, income or expense entry (tagged union on ``type``)
- Match: association between one transaction and one record, with a lifecycle

Transactions and records are pydantic models so external rows are validated
once at the boundary. Match is a mutable entity; its persisted form lives in
``infrastructure.models``.
"""

import datetime as dt
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .enums import MatchStatus, MatchType, RecordType, TransactionStatus

if TYPE_CHECKING:
    from .value_objects import MatchSuggestion


class Transaction(BaseModel):
    """Bank transaction imported from a statement.

    Attributes:
        id: Stable transaction identifier
        date: Booking date
        description: Free-text description from the bank
        amount: Signed amount (positive=credit/income, negative=debit/expense)
        bank_name: Name of the bank the statement came from
        match_status: Current matching status
        matched_record_id: Record linked by the confirmed match, if any
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(min_length=1)
    date: dt.date
    description: str = ""
    amount: Decimal
    bank_name: str | None = None
    match_status: TransactionStatus = TransactionStatus.UNMATCHED
    matched_record_id: str | None = None

    @property
    def is_incoming(self) -> bool:
        """Whether this is an incoming payment (positive amount)."""
        return self.amount > 0

    @property
    def is_outgoing(self) -> bool:
        """Whether this is an outgoing payment (negative amount)."""
        return self.amount < 0

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id!r}, date={self.date}, "
            f"amount={self.amount}, status='{self.match_status.value}')>"
        )


class _RecordBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    counterparty: str | None = None
    date: dt.date | None = None
    amount: Decimal = Field(ge=0)
    document_number: str | None = None
    description: str | None = None

    @property
    def record_type(self) -> RecordType:
        return RecordType(self.type)  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}(id={self.id!r}, amount={self.amount}, "
            f"counterparty={self.counterparty!r})>"
        )


class InvoiceRecord(_RecordBase):
    """Issued or received invoice. Direction-neutral for matching."""

    type: Literal["invoice"] = "invoice"


class IncomeRecord(_RecordBase):
    """Income entry; only credits can settle it."""

    type: Literal["income"] = "income"


class ExpenseRecord(_RecordBase):
    """Expense entry (supplier bill, airline ticket, hotel); only debits settle it."""

    type: Literal["expense"] = "expense"


Record = Annotated[
    Union[InvoiceRecord, IncomeRecord, ExpenseRecord],
    Field(discriminator="type"),
]

RECORD_ADAPTER: TypeAdapter[Record] = TypeAdapter(Record)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


@dataclass
class Match:
    """Association between one transaction and one record.

    Attributes:
        transaction_id: Matched transaction
        record_id: Matched record
        record_type: Type of the matched record, when known
        status: SUGGESTED / CONFIRMED / REJECTED
        match_type: SUGGESTED / MANUAL / AUTO
        confidence: Score that produced a system suggestion (None for manual links)
        reasons: Reason tags behind the score
        id: Stable match identifier
        created_at: When the association was first stored
        matched_at: When it was confirmed
    """

    transaction_id: str
    record_id: str
    record_type: RecordType | None = None
    status: MatchStatus = MatchStatus.SUGGESTED
    match_type: MatchType = MatchType.SUGGESTED
    confidence: float | None = None
    reasons: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: dt.datetime = field(default_factory=_utcnow)
    matched_at: dt.datetime | None = None

    @classmethod
    def from_suggestion(cls, suggestion: "MatchSuggestion") -> "Match":
        """Build a SUGGESTED match from a proposer suggestion."""
        return cls(
            transaction_id=suggestion.transaction_id,
            record_id=suggestion.record_id,
            record_type=suggestion.record_type,
            confidence=suggestion.confidence,
            reasons=list(suggestion.reasons),
        )

    def confirm(self, match_type: MatchType | None = None) -> None:
        """Mark this match as confirmed."""
        if match_type is not None:
            self.match_type = match_type
        self.status = MatchStatus.CONFIRMED
        self.matched_at = _utcnow()

    def reject(self) -> None:
        """Mark this match as rejected (the caller discards it)."""
        self.status = MatchStatus.REJECTED

    @property
    def is_confirmed(self) -> bool:
        return self.status == MatchStatus.CONFIRMED

    @property
    def is_suggested(self) -> bool:
        return self.status == MatchStatus.SUGGESTED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "record_id": self.record_id,
            "record_type": self.record_type.value if self.record_type else None,
            "status": self.status.value,
            "match_type": self.match_type.value,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "created_at": self.created_at.isoformat(),
            "matched_at": self.matched_at.isoformat() if self.matched_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<Match(id={self.id!r}, transaction_id={self.transaction_id!r}, "
            f"record_id={self.record_id!r}, status='{self.status.value}')>"
        )
