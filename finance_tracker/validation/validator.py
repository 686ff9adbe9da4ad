"""
Entry Payload Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - REQUIRED FIELDS:
- type, amount and date must be present
- amount must be a positive number
- This mirrors what every client form enforces before saving

STAGE 2 - SCHEMA VALIDATION:
- The payload must build a valid Entry (known type, real dates,
  non-negative principal)

Validation NEVER silently fixes a request. Lenient coercion is reserved for
rows pulled from remotes (Entry.from_remote), where the data already exists
and rejecting it would lose it. A request from a client is rejected with a
message instead.
"""

import datetime as dt
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from finance_tracker.models.entry import Entry, new_entry_id, now_ms


REQUIRED_ENTRY_FIELDS_MESSAGE = "Required fields: type, amount, date"
REQUIRED_DEBT_FIELDS_MESSAGE = "Required fields: amount, installments, dueDate"


class EntryValidationError(ValueError):
    """A client payload cannot become an entry. Never retried."""
    pass


class DebtSchedule(BaseModel):
    """A debt to be split into monthly installments."""
    amount: Decimal = Field(..., gt=0)
    installments: int = Field(..., gt=0, le=600)
    first_due: dt.date
    note: str = ""
    who: str = ""
    category: str = ""
    account: str = ""


def _positive_amount(raw: Any) -> Optional[Decimal]:
    if raw is None or raw == "" or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid {location}: {first.get('msg')}" if location else first.get("msg", str(error))


class EntryValidator:
    """
    Validates entry and debt payloads from clients.

    Usage:
        validator = EntryValidator()
        entry = validator.validate_entry({"type": "income", "amount": 1500, "date": "2024-03-07"})
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self._clock = clock

    def validate_entry(self, payload: Any) -> Entry:
        """
        Build a new entry revision from a client payload.

        The id is kept when the client sent one (an edit) and generated
        otherwise; updatedAt is always set to now.

        Raises:
            EntryValidationError: missing fields or an invalid value
        """
        if not isinstance(payload, dict):
            raise EntryValidationError(REQUIRED_ENTRY_FIELDS_MESSAGE)

        # Stage 1: required fields
        if not payload.get("type") or not payload.get("date"):
            raise EntryValidationError(REQUIRED_ENTRY_FIELDS_MESSAGE)
        if _positive_amount(payload.get("amount")) is None:
            raise EntryValidationError(REQUIRED_ENTRY_FIELDS_MESSAGE)

        # Stage 2: schema
        data = {k: v for k, v in payload.items() if k not in ("updatedAt", "updated_at")}
        data["id"] = str(payload.get("id") or new_entry_id())
        data["updatedAt"] = self._clock()
        try:
            return Entry.model_validate(data)
        except ValidationError as e:
            raise EntryValidationError(_first_error(e))

    def validate_debt(self, payload: Any) -> DebtSchedule:
        """
        Validate an installment debt request.

        Raises:
            EntryValidationError: missing fields or an invalid value
        """
        if not isinstance(payload, dict):
            raise EntryValidationError(REQUIRED_DEBT_FIELDS_MESSAGE)

        first_due = payload.get("dueDate") or payload.get("due_date") or payload.get("firstDue")
        if _positive_amount(payload.get("amount")) is None or not first_due:
            raise EntryValidationError(REQUIRED_DEBT_FIELDS_MESSAGE)
        if not payload.get("installments"):
            raise EntryValidationError(REQUIRED_DEBT_FIELDS_MESSAGE)

        try:
            return DebtSchedule(
                amount=payload["amount"],
                installments=payload["installments"],
                first_due=str(first_due).split("T")[0],
                note=payload.get("note") or "",
                who=payload.get("who") or "",
                category=payload.get("category") or "",
                account=payload.get("account") or "",
            )
        except ValidationError as e:
            raise EntryValidationError(_first_error(e))
