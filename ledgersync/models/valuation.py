"""
Derived View Models

Results of the aggregation layer. Nothing here is stored; every value is
recomputed from fetched collections.

DESIGN DECISION: A total that had to leave something out says so.
Every result that converts amounts carries an `excluded` list and an
`is_complete` flag. An unconvertible amount is never counted as zero.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class TransactionKind(str, Enum):
    """Filter for monthly summaries."""
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"


class ExcludedAmount(BaseModel):
    """An amount left out of a converted total because no rate was known."""

    entity_type: str = Field(..., description="account or transaction")
    entity_id: str
    currency: str
    amount: Decimal
    reason: str


class BalanceTotal(BaseModel):
    """Sum of account balances in the preferred currency."""

    currency: str
    amount: Decimal = Decimal("0")
    included_count: int = 0
    excluded: list[ExcludedAmount] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.excluded


class MonthlySummary(BaseModel):
    """Transactions of one calendar month, totalled per currency."""

    month_key: str = Field(..., description="YYYY-MM")
    label: str = Field(..., description="e.g. January 2024")
    transaction_count: int = 0
    total_amount_by_currency: dict[str, Decimal] = Field(default_factory=dict)


class BreakdownEntry(BaseModel):
    """One bucket of a category or group breakdown."""

    name: str
    amount: Decimal = Decimal("0")
    transaction_count: int = 0


class Breakdown(BaseModel):
    """Converted totals per category or group, largest first."""

    currency: str
    entries: list[BreakdownEntry] = Field(default_factory=list)
    excluded: list[ExcludedAmount] = Field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((e.amount for e in self.entries), Decimal("0"))

    @property
    def is_complete(self) -> bool:
        return not self.excluded


class CompositionSlice(BaseModel):
    name: str
    amount: Decimal


class NetWorthComposition(BaseModel):
    """Positive holdings split into traditional and crypto assets."""

    currency: str
    slices: list[CompositionSlice] = Field(default_factory=list)
    excluded: list[ExcludedAmount] = Field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((s.amount for s in self.slices), Decimal("0"))

    @property
    def is_complete(self) -> bool:
        return not self.excluded
