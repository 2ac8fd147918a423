"""
Core Data Models for Ledger Sync

These models define the strict schemas for every record the core reads
from or writes to the remote store. They are designed to:
1. Enforce invariants at runtime (uppercase currency codes, finite amounts)
2. Map cleanly to the camelCase wire payload
3. Make optional fields explicit (None in memory, null on the wire)
4. Track whether a timestamp is a local guess or the store's value

DESIGN DECISION: Monetary amounts are Decimal, never float.
Floats coming off the wire are converted through str() so 0.1 stays 0.1.
Rounding happens ONLY when formatting for display.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Kinds of account a user can hold."""
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT_CARD = "credit-card"
    INVESTMENT = "investment"
    EXCHANGE = "exchange"
    WALLET = "wallet"
    STAKING = "staking"
    OTHER = "other"


class AccountCategory(str, Enum):
    """Conventional asset vs crypto holding."""
    ASSET = "asset"
    CRYPTO = "crypto"


class TimestampState(str, Enum):
    """
    Where a timestamp value came from.

    PENDING values are synthesized locally right after a write so the UI
    has something to show. The next read from the store replaces them
    with CONFIRMED values.
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"


# =============================================================================
# HELPERS
# =============================================================================

def to_decimal(value: Any) -> Any:
    """Convert wire numbers to Decimal without float artefacts."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            return value
    return value


def require_finite(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is not None and not value.is_finite():
        raise ValueError("Amount must be a finite number")
    return value


def parse_calendar_date(value: Any) -> Any:
    """
    Accept 'YYYY-MM-DD' or a full ISO datetime.

    A datetime is normalized to UTC before taking its calendar date;
    a bare date is treated as midnight UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, str) and "T" in value:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date()
    return value


# Models have a field named `date`; annotating with the bare name would
# resolve to that field once annotations are evaluated lazily (Python 3.14)
CalendarDate = date


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# TIMESTAMPS
# =============================================================================

class EntityTimestamp(BaseModel):
    """A created/updated timestamp with its provenance."""

    value: datetime
    state: TimestampState = TimestampState.CONFIRMED

    @classmethod
    def pending(cls, now: Optional[datetime] = None) -> "EntityTimestamp":
        """Local optimistic timestamp for an object that was just written."""
        return cls(value=now or utc_now(), state=TimestampState.PENDING)

    @classmethod
    def from_wire(cls, raw: Any) -> Optional["EntityTimestamp"]:
        """
        Parse a stored timestamp.

        The store writes epoch milliseconds for server timestamps, but
        older optimistic writes may have left an ISO-8601 string behind.
        Both are accepted; anything read back from the store is CONFIRMED.
        """
        if raw is None:
            return None
        if isinstance(raw, EntityTimestamp):
            return raw
        if isinstance(raw, dict):
            if "value" in raw:
                return cls.model_validate(raw)
            # Unresolved server sentinel - nothing meaningful to show yet
            return None
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return cls(value=datetime.fromtimestamp(raw / 1000, tz=timezone.utc))
        if isinstance(raw, datetime):
            value = raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
            return cls(value=value)
        if isinstance(raw, str) and raw.strip():
            value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return cls(value=value)
        raise ValueError(f"Unrecognized timestamp value: {raw!r}")

    @property
    def is_pending(self) -> bool:
        return self.state == TimestampState.PENDING

    def isoformat(self) -> str:
        return self.value.isoformat()


# =============================================================================
# BASE MODELS
# =============================================================================

class LedgerModel(BaseModel):
    """
    Base for everything stored under a user's namespace.

    Field names are snake_case in Python and camelCase on the wire.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    SYSTEM_FIELDS: ClassVar[set[str]] = {"id", "created_at", "updated_at"}

    def to_payload(self) -> dict[str, Any]:
        """
        Wire payload for this record.

        Optional fields are written as null rather than omitted, so a
        reader can tell "explicitly empty" apart from "never written".
        Identity and timestamps are owned by the repository.
        """
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude=self.SYSTEM_FIELDS,
        )


class PersistedMixin(LedgerModel):
    """Store-assigned identity plus created/updated timestamps."""

    id: str = Field(
        default="",
        description="Store-assigned key (empty until persisted)"
    )
    created_at: Optional[EntityTimestamp] = None
    updated_at: Optional[EntityTimestamp] = None

    @field_validator('created_at', 'updated_at', mode='before')
    @classmethod
    def parse_timestamp(cls, v: Any) -> Optional[EntityTimestamp]:
        return EntityTimestamp.from_wire(v)

    @classmethod
    def normalize_payload(cls, payload: dict[str, Any]) -> dict[str, Any]:
        """Hook for subclasses to repair legacy payload shapes."""
        return payload

    @classmethod
    def from_wire(cls, key: str, payload: dict[str, Any]):
        """Rebuild a domain object from its store key and payload."""
        data = cls.normalize_payload(dict(payload or {}))
        data["id"] = key
        return cls.model_validate(data)


# =============================================================================
# ACCOUNT
# =============================================================================

class NewAccount(LedgerModel):
    """Data needed to create an account."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    type: AccountType = Field(
        default=AccountType.CHECKING,
        description="Account type"
    )
    currency: str = Field(
        ...,
        min_length=1,
        max_length=12,
        description="ISO fiat code or crypto ticker"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current balance (signed)"
    )
    provider_name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Bank, exchange or wallet provider"
    )
    category: AccountCategory = Field(
        default=AccountCategory.ASSET,
        description="Conventional asset or crypto holding"
    )
    include_in_net_worth: bool = True

    @field_validator('currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        """Accept 'credit card' / 'credit_card'; unknown types map to other."""
        if isinstance(v, str):
            normalized = v.strip().lower().replace(" ", "-").replace("_", "-")
            try:
                return AccountType(normalized)
            except ValueError:
                return AccountType.OTHER
        return v

    @field_validator('balance', mode='before')
    @classmethod
    def coerce_balance(cls, v: Any) -> Any:
        return to_decimal(v)

    @field_validator('balance')
    @classmethod
    def finite_balance(cls, v: Decimal) -> Decimal:
        return require_finite(v)


class Account(PersistedMixin, NewAccount):
    """
    An owned monetary container.

    The balance is whatever the user last recorded. It is NOT derived
    from transaction history and swaps never touch it.
    """

    @classmethod
    def normalize_payload(cls, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Repair records written by older clients.

        - missing name → "Unnamed Account"
        - missing type → wallet for crypto accounts, checking otherwise
        - legacy multi-currency `balances` list → summed per currency, then the primary entry
        """
        if not payload.get("name"):
            payload["name"] = "Unnamed Account"
        if not payload.get("category"):
            payload["category"] = AccountCategory.ASSET.value
        if not payload.get("type"):
            payload["type"] = (
                AccountType.WALLET.value
                if payload["category"] == AccountCategory.CRYPTO.value
                else AccountType.CHECKING.value
            )

        balances = payload.pop("balances", None)
        primary = payload.pop("primaryCurrency", None)
        if payload.get("currency") is None and isinstance(balances, list) and balances:
            consolidated = cls._consolidate_balances(balances)
            currency = str(primary).upper() if primary else ""
            if currency not in consolidated:
                currency = next(iter(consolidated))
            payload["currency"] = currency
            payload["balance"] = consolidated[currency]
        elif payload.get("currency") is None and primary:
            payload["currency"] = primary
        elif payload.get("currency") is None:
            payload["currency"] = "USD"
            payload.setdefault("balance", 0)

        # Older records never wrote these keys at all
        payload.setdefault("providerName", None)
        payload.setdefault("includeInNetWorth", True)
        return payload

    @staticmethod
    def _consolidate_balances(balances: list) -> dict[str, Decimal]:
        """Sum legacy balance entries per currency, keeping first-seen order."""
        consolidated: dict[str, Decimal] = {}
        for entry in balances:
            if not isinstance(entry, dict):
                raise ValueError(f"Legacy balance entry is not an object: {entry!r}")
            currency = str(entry.get("currency") or "USD").strip().upper()
            try:
                amount = Decimal(str(entry.get("amount", 0)))
            except InvalidOperation:
                amount = Decimal("0")
            if not amount.is_finite():
                amount = Decimal("0")
            consolidated[currency] = consolidated.get(currency, Decimal("0")) + amount
        return consolidated


# =============================================================================
# TRANSACTION
# =============================================================================

class NewTransaction(LedgerModel):
    """Data needed to record a transaction."""

    account_id: str = Field(
        ...,
        min_length=1,
        description="Owning account (weak reference)"
    )
    date: CalendarDate = Field(
        ...,
        description="Calendar date of the movement"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    category: str = Field(
        default="Uncategorized",
        description="Category name or taxonomy id"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount: positive inflow, negative outflow"
    )
    transaction_currency: str = Field(
        ...,
        min_length=1,
        max_length=12,
    )
    tags: list[str] = Field(default_factory=list)

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        return parse_calendar_date(v)

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Uncategorized"
        return v

    @field_validator('transaction_currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.upper()

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        return to_decimal(v)

    @field_validator('amount')
    @classmethod
    def finite_amount(cls, v: Decimal) -> Decimal:
        return require_finite(v)

    @field_validator('tags', mode='before')
    @classmethod
    def default_tags(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def is_inflow(self) -> bool:
        return self.amount > 0

    @property
    def is_outflow(self) -> bool:
        return self.amount < 0


class Transaction(PersistedMixin, NewTransaction):
    """A dated monetary movement tied to exactly one account."""

    @classmethod
    def normalize_payload(cls, payload: dict[str, Any]) -> dict[str, Any]:
        # Very old records have no transactionCurrency; the caller
        # resolves those through the account (see aggregation).
        payload.setdefault("tags", [])
        return payload


# =============================================================================
# SWAP
# =============================================================================

class NewSwap(LedgerModel):
    """Data needed to record a swap between two assets."""

    date: CalendarDate
    platform_account_id: str = Field(
        ...,
        min_length=1,
        description="Account representing the venue (exchange, wallet)"
    )
    from_asset: str = Field(..., min_length=1, max_length=12)
    from_amount: Decimal
    to_asset: str = Field(..., min_length=1, max_length=12)
    to_amount: Decimal
    fee_amount: Optional[Decimal] = None
    fee_currency: Optional[str] = Field(default=None, max_length=12)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        return parse_calendar_date(v)

    @field_validator('from_asset', 'to_asset')
    @classmethod
    def uppercase_asset(cls, v: str) -> str:
        return v.upper()

    @field_validator('fee_currency')
    @classmethod
    def uppercase_fee_currency(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v:
            return None
        return v.upper()

    @field_validator('from_amount', 'to_amount', 'fee_amount', mode='before')
    @classmethod
    def coerce_amounts(cls, v: Any) -> Any:
        return to_decimal(v)

    @field_validator('from_amount', 'to_amount', 'fee_amount')
    @classmethod
    def finite_amounts(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return require_finite(v)


class Swap(PersistedMixin, NewSwap):
    """
    A conversion between two assets on a platform account.

    KNOWN LIMITATION: recording a swap does not adjust any account
    balance. Users record the matching transactions themselves
    (see repositories.swaps.build_swap_legs).
    """

    @classmethod
    def normalize_payload(cls, payload: dict[str, Any]) -> dict[str, Any]:
        for key in ("feeAmount", "feeCurrency", "notes"):
            payload.setdefault(key, None)
        # Link list written by an older client; not part of this model
        payload.pop("relatedTransactionIds", None)
        return payload


# =============================================================================
# PREFERENCES AND TAXONOMY
# =============================================================================

class UserPreferences(LedgerModel):
    """Per-user display preferences."""

    preferred_currency: str = Field(
        default="BRL",
        min_length=1,
        max_length=12,
    )

    @field_validator('preferred_currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.upper()


class Category(BaseModel):
    """A transaction category (owned by the taxonomy editor)."""

    id: str
    name: str


class Group(BaseModel):
    """A named set of category identifiers."""

    id: str
    name: str
    category_ids: list[str] = Field(default_factory=list)
