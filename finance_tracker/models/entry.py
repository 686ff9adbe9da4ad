"""
Core Data Models for Finance Tracker

These models define the strict schema for the single domain entity, the
financial Entry, and the small enums that travel with it.

DESIGN DECISION: An Entry is immutable. A change is a new revision that
replaces the old one wholesale and carries a fresh updatedAt. Reconciliation
relies on this: two entries with the same id are the same logical entry at
different revisions, and updatedAt alone decides which one is newer.

Wire shape is camelCase (dueDate, updatedAt) because that is what the
remotes already store. Input accepts either spelling.
"""

import datetime as dt
import time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryType(str, Enum):
    """
    Closed set of entry types.

    Deployments may only use a subset (the classic set is income, payment,
    debt and receivable) but every value here is understood everywhere.
    """
    INCOME = "income"
    PAYMENT = "payment"
    DEBT = "debt"
    RECEIVABLE = "receivable"
    EXPENSE = "expense"
    MICRO_EXPENSE = "micro-expense"


# Types that take money out of an account
OUTFLOW_TYPES = frozenset({
    EntryType.PAYMENT,
    EntryType.EXPENSE,
    EntryType.MICRO_EXPENSE,
})


class PushMode(str, Enum):
    """How a remote treats a batch of pushed entries."""
    REPLACE_ALL = "replace-all"
    APPEND = "append"
    UPSERT = "upsert"


# Free-text type columns (spreadsheets, legacy Spanish tags) are matched by
# prefix after an exact match against EntryType fails.
_TYPE_PREFIXES = (
    ("ing", EntryType.INCOME),
    ("pag", EntryType.PAYMENT),
    ("gas", EntryType.PAYMENT),
    ("deu", EntryType.DEBT),
    ("cob", EntryType.RECEIVABLE),
)


def normalize_entry_type(raw: Any) -> EntryType:
    """
    Map a free-text type into the closed EntryType set.

    Examples:
        "income"   -> INCOME
        "Ingresos" -> INCOME
        "gasto"    -> PAYMENT
        "Deuda"    -> DEBT
        "cobro"    -> RECEIVABLE
        "???"      -> PAYMENT (default)
    """
    if isinstance(raw, EntryType):
        return raw
    text = str(raw or "").strip().lower()
    try:
        return EntryType(text)
    except ValueError:
        pass
    for prefix, entry_type in _TYPE_PREFIXES:
        if text.startswith(prefix):
            return entry_type
    return EntryType.PAYMENT


# =============================================================================
# HELPERS
# =============================================================================

def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def new_entry_id() -> str:
    return str(uuid4())


def parse_amount(raw: Any) -> Decimal:
    """
    Parse an amount leniently.

    Numbers pass through. Strings that are not plain decimals (for example
    "$ 1.250.000") keep only their digits. Anything unusable becomes 0.
    """
    if raw is None or raw == "":
        return Decimal("0")
    if isinstance(raw, bool):
        return Decimal("0")
    if isinstance(raw, (int, float, Decimal)):
        return abs(Decimal(str(raw)))
    text = str(raw).strip()
    try:
        return abs(Decimal(text))
    except InvalidOperation:
        digits = "".join(ch for ch in text if ch.isdigit())
        return Decimal(digits) if digits else Decimal("0")


def parse_date_or_today(raw: Any, today: Optional[dt.date] = None) -> dt.date:
    """Parse an ISO date (time part ignored), falling back to today."""
    today = today or dt.date.today()
    if isinstance(raw, dt.datetime):
        return raw.date()
    if isinstance(raw, dt.date):
        return raw
    text = str(raw or "").strip().split("T")[0]
    try:
        return dt.date.fromisoformat(text)
    except ValueError:
        return today


def _number(value: Optional[Decimal]) -> Optional[float | int]:
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# =============================================================================
# ENTRY
# =============================================================================

class Entry(BaseModel):
    """
    A single financial record.

    updated_at is the sole tie-breaker for reconciliation and is set to
    "now" on every local mutation. An absent updatedAt reads as 0, which
    loses to any real revision.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str = Field(
        default_factory=new_entry_id,
        min_length=1,
        description="Opaque identifier, the reconciliation key"
    )
    type: EntryType = Field(
        ...,
        description="Entry type"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative magnitude, currency agnostic"
    )
    principal: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Original principal of a debt"
    )
    date: dt.date = Field(
        ...,
        description="Effective date of the entry"
    )
    due_date: Optional[dt.date] = Field(
        default=None,
        description="When a debt or receivable falls due"
    )

    note: str = ""
    who: str = ""
    category: str = ""
    account: str = ""
    tags: list[str] = Field(default_factory=list)

    updated_at: int = Field(
        default=0,
        ge=0,
        description="Epoch milliseconds of the last local mutation"
    )

    @field_validator("type", mode="before")
    @classmethod
    def lowercase_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("date", "due_date", mode="before")
    @classmethod
    def strip_time_part(cls, v: Any) -> Any:
        """Accept full ISO timestamps; blank strings mean absent."""
        if isinstance(v, str):
            v = v.strip().split("T")[0]
            return v or None
        return v

    @field_validator("principal", mode="before")
    @classmethod
    def blank_principal(cls, v: Any) -> Any:
        return None if v == "" else v

    @field_validator("note", "who", "category", "account", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> Any:
        """Tags may arrive as a comma-separated string (relational storage, sheets)."""
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        return v

    @field_validator("updated_at", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Any:
        if v is None or v == "":
            return 0
        if isinstance(v, float):
            return int(v)
        if isinstance(v, str):
            return int(float(v))
        return v

    @field_serializer("amount", "principal", when_used="json")
    def serialize_money(self, value: Optional[Decimal]) -> Optional[float | int]:
        """Amounts are JSON numbers on the wire, not strings."""
        return _number(value)

    def to_wire(self) -> dict:
        """JSON-ready dict in the camelCase wire shape."""
        return self.model_dump(mode="json", by_alias=True)

    def revise(self, updated_at: Optional[int] = None, **changes: Any) -> "Entry":
        """
        Create the next revision of this entry.

        The id is kept; updatedAt is refreshed. The result is fully
        re-validated.
        """
        data = self.model_dump()
        data.update(changes)
        data["id"] = self.id
        data["updated_at"] = updated_at if updated_at is not None else now_ms()
        return Entry.model_validate(data)

    @classmethod
    def from_remote(
        cls,
        raw: Any,
        today: Optional[dt.date] = None,
    ) -> "Entry":
        """
        Build an Entry from a loosely-typed remote row.

        Remotes (spreadsheets especially) hold hand-edited data, so this is
        forgiving where Entry itself is strict:
        - missing id gets a fresh one
        - type goes through normalize_entry_type
        - amount is parsed leniently, default 0
        - date falls back to dueDate, then today
        - missing updatedAt stays 0 so any local revision wins over it

        Raises:
            TypeError: if the row is not a mapping
        """
        if not isinstance(raw, dict):
            raise TypeError(f"Entry row must be an object, got {type(raw).__name__}")

        def pick(*keys: str) -> Any:
            for key in keys:
                value = raw.get(key)
                if value not in (None, ""):
                    return value
            return None

        due_raw = pick("dueDate", "due_date")
        due_date = parse_date_or_today(due_raw, today) if due_raw else None
        principal_raw = pick("principal")

        return cls(
            id=str(pick("id") or new_entry_id()),
            type=normalize_entry_type(pick("type")),
            amount=parse_amount(pick("amount")),
            principal=parse_amount(principal_raw) if principal_raw is not None else None,
            date=parse_date_or_today(pick("date") or due_raw, today),
            due_date=due_date,
            note=str(pick("note") or ""),
            who=str(pick("who") or ""),
            category=str(pick("category") or ""),
            account=str(pick("account") or ""),
            tags=pick("tags") or [],
            updated_at=pick("updatedAt", "updated_at") or 0,
        )
