# budget_tracker/core/models.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from budget_tracker.utils import generate_id

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)
DEFAULT_CATEGORY = "Other"


def signed_amount(amount: float, txn_type: str) -> float:
    """Return ``amount`` with the sign its type calls for."""
    if not amount:
        return 0.0
    if txn_type == EXPENSE:
        return -abs(amount)
    return abs(amount)


def type_for_amount(amount: float) -> str:
    return INCOME if amount >= 0 else EXPENSE


@dataclass
class Transaction:
    id: str
    date: str
    type: str
    category: str
    amount: float
    notes: str = ""
    description: str = ""
    recurring: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """Build a record from stored or submitted data.

        This is the one place where sign and type are reconciled: a known
        ``type`` wins and the amount is signed to match it, otherwise the
        type is derived from the amount's sign. A record without an id gets
        a generated one.
        """
        amount = float(data.get("amount") or 0.0)
        txn_type = data.get("type")
        if txn_type in TRANSACTION_TYPES:
            amount = signed_amount(amount, txn_type)
        else:
            txn_type = type_for_amount(amount)

        txn_id = data.get("id")
        if txn_id is None or txn_id == "":
            txn_id = generate_id()
        category = data.get("category") or DEFAULT_CATEGORY
        notes = data.get("notes") or ""
        return cls(
            id=str(txn_id),
            date=str(data.get("date") or ""),
            type=txn_type,
            category=str(category),
            amount=amount,
            notes=str(notes),
            description=str(data.get("description") or notes or category),
            recurring=bool(data.get("recurring")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def matches_id(self, txn_id: Any) -> bool:
        return self.id == str(txn_id)
