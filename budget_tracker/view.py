"""View model for the transactions table and dashboard.

All state lives in an explicit :class:`ViewState`. Transitions return a new
state and :func:`render` is a pure function of it, so nothing here touches
module-level variables.
"""
from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple

from budget_tracker.client import TransactionBackend
from budget_tracker.core.models import DEFAULT_CATEGORY, EXPENSE, INCOME, TRANSACTION_TYPES, type_for_amount
from budget_tracker.utils import month_key, parse_date

DEFAULT_PAGE_SIZE = 25


@dataclass(frozen=True)
class ViewFilters:
    q: str = ""
    type: str = ""
    category: str = ""
    date_from: str = ""
    date_to: str = ""


@dataclass(frozen=True)
class ViewState:
    transactions: Tuple[dict, ...] = ()
    filters: ViewFilters = field(default_factory=ViewFilters)
    sort_key: str = "date"
    sort_dir: str = "desc"
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    edit_id: Optional[str] = None


@dataclass(frozen=True)
class Page:
    rows: List[dict]
    total: int
    pages: int
    page: int


# -----------------------------------------------------------------------------
# State transitions
# -----------------------------------------------------------------------------

def refresh(state: ViewState, client: TransactionBackend) -> ViewState:
    """Replace the cached collection with a fresh fetch of every record."""
    return replace(state, transactions=tuple(client.list_transactions()))


def set_filters(state: ViewState, **changes: str) -> ViewState:
    filters = replace(state.filters, **changes)
    return replace(state, filters=filters, page=1)


def clear_filters(state: ViewState) -> ViewState:
    return replace(state, filters=ViewFilters(), page=1)


def toggle_sort(state: ViewState, key: str) -> ViewState:
    if key == state.sort_key:
        direction = "desc" if state.sort_dir == "asc" else "asc"
    else:
        direction = "asc"
    return replace(state, sort_key=key, sort_dir=direction)


def set_page_size(state: ViewState, size: int) -> ViewState:
    if size < 1:
        raise ValueError("page size must be at least 1")
    return replace(state, page_size=size, page=1)


def next_page(state: ViewState) -> ViewState:
    total = len(apply_filters(normalize(state.transactions), state.filters))
    pages = _page_count(total, state.page_size)
    return replace(state, page=min(pages, state.page + 1))


def prev_page(state: ViewState) -> ViewState:
    return replace(state, page=max(1, state.page - 1))


def start_edit(state: ViewState, txn_id) -> ViewState:
    """Mark ``txn_id`` as the record open in the edit form, if it exists."""
    wanted = str(txn_id)
    if not any(str(t.get("id")) == wanted for t in state.transactions):
        raise KeyError(wanted)
    return replace(state, edit_id=wanted)


def finish_edit(state: ViewState) -> ViewState:
    return replace(state, edit_id=None)


def editing_row(state: ViewState) -> Optional[dict]:
    if state.edit_id is None:
        return None
    return next((r for r in normalize(state.transactions) if str(r["id"]) == state.edit_id), None)


# -----------------------------------------------------------------------------
# Pure transforms
# -----------------------------------------------------------------------------

def _as_float(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def normalize(records: Iterable[dict]) -> List[dict]:
    """Shape stored records for display.

    The stored ``type`` is taken as given (derived from the sign only for
    records that lack one) and ``amount`` becomes its magnitude. Applying
    it to its own output changes nothing.
    """
    rows = []
    for t in records:
        amount = _as_float(t.get("amount"))
        txn_type = t.get("type")
        if txn_type not in TRANSACTION_TYPES:
            txn_type = type_for_amount(amount)
        rows.append(
            {
                "id": t.get("id"),
                "date": t.get("date"),
                "type": txn_type,
                "category": t.get("category") or DEFAULT_CATEGORY,
                "amount": abs(amount),
                "notes": t.get("notes") or t.get("description") or "",
                "recurring": bool(t.get("recurring")),
            }
        )
    return rows


def apply_filters(rows: Iterable[dict], filters: ViewFilters) -> List[dict]:
    result = list(rows)
    q = (filters.q or "").strip().lower()
    if q:
        result = [
            r for r in result
            if q in (r.get("notes") or "").lower() or q in (r.get("category") or "").lower()
        ]
    if filters.type:
        result = [r for r in result if r.get("type") == filters.type]
    if filters.category:
        result = [r for r in result if r.get("category") == filters.category]

    start = parse_date(filters.date_from)
    end = parse_date(filters.date_to)
    if start or end:
        dated = []
        for r in result:
            d = parse_date(r.get("date"))
            if d is None:
                continue
            if start and d < start:
                continue
            if end and d > end:
                continue
            dated.append(r)
        result = dated
    return result


def sort_rows(rows: Iterable[dict], key: str, direction: str = "asc") -> List[dict]:
    rows = list(rows)
    reverse = direction == "desc"
    if key == "amount":
        return sorted(rows, key=lambda r: _as_float(r.get("amount")), reverse=reverse)
    if key == "date":
        # Unparseable dates always go last, whatever the direction.
        valid = [r for r in rows if parse_date(r.get("date")) is not None]
        invalid = [r for r in rows if parse_date(r.get("date")) is None]
        return sorted(valid, key=lambda r: parse_date(r["date"]), reverse=reverse) + invalid
    return sorted(rows, key=lambda r: str(r.get(key, "")), reverse=reverse)


def _page_count(total: int, page_size: int) -> int:
    return max(1, math.ceil(total / page_size))


def paginate(rows: List[dict], page: int, page_size: int = DEFAULT_PAGE_SIZE) -> Page:
    total = len(rows)
    pages = _page_count(total, page_size)
    page = min(max(1, page), pages)
    start = (page - 1) * page_size
    return Page(rows=rows[start:start + page_size], total=total, pages=pages, page=page)


def render(state: ViewState) -> Tuple[ViewState, Page]:
    """Normalize, filter, sort and page the state's collection.

    Returns the state with its page clamped into range, plus the page.
    """
    rows = apply_filters(normalize(state.transactions), state.filters)
    rows = sort_rows(rows, state.sort_key, state.sort_dir)
    page = paginate(rows, state.page, state.page_size)
    return replace(state, page=page.page), page


# -----------------------------------------------------------------------------
# Dashboard aggregates
# -----------------------------------------------------------------------------

def monthly_expense(rows: Iterable[dict], month: str) -> float:
    """Total expense magnitude for one YYYY-MM month of normalized rows."""
    return sum(
        _as_float(r["amount"]) for r in rows
        if r["type"] == EXPENSE and month_key(r.get("date")) == month
    )


def goal_progress(spent: float, goal: float) -> float:
    """Percentage of the monthly goal spent, capped at 100."""
    if not goal:
        return 0.0
    return min(100.0, spent / goal * 100)


def expenses_by_category(rows: Iterable[dict]) -> Dict[str, float]:
    totals: Dict[str, float] = defaultdict(float)
    for r in rows:
        if r["type"] == EXPENSE:
            totals[r["category"]] += _as_float(r["amount"])
    return dict(totals)


def net_by_month(rows: Iterable[dict]) -> Dict[str, float]:
    """Income minus expense per month, keyed and ordered by YYYY-MM."""
    totals: Dict[str, float] = defaultdict(float)
    for r in rows:
        key = month_key(r.get("date"))
        if key is None:
            continue
        amount = _as_float(r["amount"])
        totals[key] += amount if r["type"] == INCOME else -amount
    return {k: totals[k] for k in sorted(totals)}
