import json
import logging
import math
import os
import tempfile
import threading
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from budget_tracker.core.models import EXPENSE, INCOME, Transaction
from budget_tracker.utils import generate_id, month_key

logger = logging.getLogger(__name__)

# Serializes every read-modify-write cycle within one process. Separate
# processes sharing a data file are not coordinated.
_write_lock = threading.Lock()

REQUIRED_FIELDS = ("date", "category", "amount")
UPDATABLE_FIELDS = ("date", "type", "category", "amount", "notes", "recurring")


class ValidationError(ValueError):
    """Raised when a payload is missing required fields or has bad values."""


class NotFoundError(LookupError):
    """Raised when no transaction matches the requested id."""


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"amount must be a number, got {value!r}")
    if not math.isfinite(amount):
        raise ValidationError("amount must be a finite number")
    return amount


def load_transactions(db_path: str) -> List[Transaction]:
    """Read the whole collection from ``db_path``.

    A missing or empty file is an empty collection.
    """
    path = Path(db_path)
    if not path.exists():
        return []
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return []
    return [Transaction.from_dict(item) for item in json.loads(text)]


def save_transactions(transactions: Iterable[Transaction], db_path: str) -> None:
    """Overwrite the document at ``db_path`` with ``transactions``.

    The new document is written to a temporary sibling file and moved into
    place, so readers never see a half-written file.
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps([tx.to_dict() for tx in transactions], indent=2, ensure_ascii=False)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            fp.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _sort_value(tx: Transaction, field: str):
    return tx.to_dict().get(field, "")


def _compare_key(value):
    # Numbers order numerically, everything else as text.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return (1, 0.0, str(value))
    return (0, float(value), "")


def query_transactions(
    db_path: str,
    category: str | None = None,
    min_amount: float | None = None,
    max_amount: float | None = None,
    sort_by: str | None = None,
    sort_dir: str = "asc",
) -> List[Dict[str, Any]]:
    """Return stored transactions filtered and sorted in memory.

    Parameters
    ----------
    category:
        Exact, case-insensitive category match.
    min_amount, max_amount:
        Inclusive bounds on the signed amount.
    sort_by:
        Any transaction field. Numeric fields compare as numbers, others
        as strings.
    sort_dir:
        ``"desc"`` for descending order, anything else sorts ascending.
    """
    txs = load_transactions(db_path)
    if category:
        wanted = category.lower()
        txs = [t for t in txs if t.category.lower() == wanted]
    if min_amount is not None:
        txs = [t for t in txs if t.amount >= min_amount]
    if max_amount is not None:
        txs = [t for t in txs if t.amount <= max_amount]
    if sort_by:
        txs = sorted(
            txs,
            key=lambda t: _compare_key(_sort_value(t, sort_by)),
            reverse=sort_dir == "desc",
        )
    return [t.to_dict() for t in txs]


def create_transaction(db_path: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate ``payload``, append it to the collection and persist.

    ``date``, ``category`` and ``amount`` must be present; a zero amount is
    accepted. An id is generated when the payload has none.
    """
    if any(_is_missing(payload.get(field)) for field in REQUIRED_FIELDS):
        raise ValidationError("Missing required fields")
    amount = _parse_amount(payload["amount"])
    notes = payload.get("notes") or ""
    record = Transaction.from_dict(
        {
            "id": payload.get("id") or generate_id(),
            "date": payload["date"],
            "type": payload.get("type"),
            "category": payload["category"],
            "amount": amount,
            "notes": notes,
            "description": notes or payload["category"],
            "recurring": payload.get("recurring"),
        }
    )

    with _write_lock:
        txs = load_transactions(db_path)
        txs.append(record)
        save_transactions(txs, db_path)
    logger.info("Created transaction %s (%s %.2f)", record.id, record.category, record.amount)
    return record.to_dict()


def update_transaction(db_path: str, txn_id: Any, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge the provided fields of ``payload`` over the stored record.

    Fields that are absent or ``None`` keep their stored value; explicit
    falsy values such as ``0`` or ``""`` are applied. The stored type is
    kept unless the payload names a new one, and the amount is re-signed
    to match it.
    """
    changes = {k: payload[k] for k in UPDATABLE_FIELDS if payload.get(k) is not None}
    if "amount" in changes:
        changes["amount"] = _parse_amount(changes["amount"])

    with _write_lock:
        txs = load_transactions(db_path)
        index = next((i for i, t in enumerate(txs) if t.matches_id(txn_id)), None)
        if index is None:
            raise NotFoundError("Not found")
        current = txs[index].to_dict()
        merged = {**current, **changes}
        merged["description"] = changes.get("notes") or changes.get("category") or current["description"]
        txs[index] = Transaction.from_dict(merged)
        save_transactions(txs, db_path)
    logger.info("Updated transaction %s", txs[index].id)
    return txs[index].to_dict()


def delete_transaction(db_path: str, txn_id: Any) -> int:
    """Remove every record matching ``txn_id``; return how many were removed."""
    with _write_lock:
        txs = load_transactions(db_path)
        kept = [t for t in txs if not t.matches_id(txn_id)]
        removed = len(txs) - len(kept)
        if removed:
            save_transactions(kept, db_path)
    if removed:
        logger.info("Deleted transaction %s", txn_id)
    else:
        logger.debug("Delete of unknown transaction %s ignored", txn_id)
    return removed


def clear_transactions(db_path: str) -> None:
    with _write_lock:
        save_transactions([], db_path)
    logger.info("Cleared all transactions in %s", db_path)


def summarize_totals(db_path: str) -> Dict[str, float]:
    """Income, expense and balance computed from amount signs alone."""
    txs = load_transactions(db_path)
    income = sum(t.amount for t in txs if t.amount > 0)
    expense = sum(t.amount for t in txs if t.amount < 0)
    return {"income": float(income), "expense": float(expense), "balance": float(income + expense)}


def summarize_by_category(db_path: str, kind: str = EXPENSE) -> List[Dict[str, object]]:
    """Aggregate absolute totals per category for one transaction type."""
    if kind not in (INCOME, EXPENSE):
        raise ValidationError("type must be income or expense")
    totals: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    for tx in load_transactions(db_path):
        if tx.type != kind:
            continue
        totals[tx.category] += abs(tx.amount)
        counts[tx.category] += 1
    rows = [
        {"category": cat, "total": totals[cat], "transactions": counts[cat]}
        for cat in totals
    ]
    return sorted(rows, key=lambda row: row["total"], reverse=True)


def summarize_by_month(db_path: str) -> List[Dict[str, object]]:
    """Net signed total per YYYY-MM month, oldest first.

    Records whose date does not parse are left out.
    """
    totals: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    for tx in load_transactions(db_path):
        key = month_key(tx.date)
        if key is None:
            continue
        totals[key] += tx.amount
        counts[key] += 1
    return [
        {"month": key, "total": totals[key], "transactions": counts[key]}
        for key in sorted(totals)
    ]
