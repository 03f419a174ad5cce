from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol

from budget_tracker import database
from budget_tracker.outputs import get_output

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """A non-2xx answer from the transaction API."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message


class TransactionBackend(Protocol):
    """Operations shared by the HTTP client and the local data file."""

    def list_transactions(self, **filters: Any) -> List[dict]:
        ...

    def create_transaction(self, payload: Dict[str, Any]) -> dict:
        ...

    def update_transaction(self, txn_id: str, payload: Dict[str, Any]) -> dict:
        ...

    def delete_transaction(self, txn_id: str) -> None:
        ...

    def summary(self) -> Dict[str, float]:
        ...

    def export(self, fmt: str = "csv") -> str:
        ...

    def clear(self) -> None:
        ...


# -----------------------------------------------------------------------------
# HTTP client for the transaction API
# -----------------------------------------------------------------------------

_QUERY_NAMES = {
    "category": "category",
    "min_amount": "min",
    "max_amount": "max",
    "sort_by": "sortBy",
    "sort_dir": "order",
}


@dataclass
class ApiClient:
    base_url: str = "http://127.0.0.1:3000/api"
    timeout: float = 10

    def _url(self, path: str, query: Dict[str, Any] | None = None) -> str:
        url = self.base_url.rstrip("/") + path
        params = {k: v for k, v in (query or {}).items() if v is not None and v != ""}
        if params:
            url += "?" + urllib.parse.urlencode(params)
        return url

    def _request(self, method: str, path: str, payload: Any = None, query: Dict[str, Any] | None = None) -> bytes:
        url = self._url(path, query)
        data = json.dumps(payload).encode() if payload is not None else None
        logger.debug("API ▶ %s %s – payload: %s", method, url, payload)
        req = urllib.request.Request(url, data=data, method=method)
        if data is not None:
            req.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            try:
                message = json.loads(body).get("error", body)
            except (json.JSONDecodeError, AttributeError):
                message = body or exc.reason
            raise ApiError(exc.code, str(message)) from exc
        logger.debug("API ◀ %s bytes", len(raw))
        return raw

    def _json(self, method: str, path: str, payload: Any = None, query: Dict[str, Any] | None = None) -> Any:
        return json.loads(self._request(method, path, payload, query).decode("utf-8"))

    def list_transactions(self, **filters: Any) -> List[dict]:
        query = {_QUERY_NAMES[k]: v for k, v in filters.items() if k in _QUERY_NAMES}
        return self._json("GET", "/transactions", query=query)

    def create_transaction(self, payload: Dict[str, Any]) -> dict:
        return self._json("POST", "/transactions", payload)

    def update_transaction(self, txn_id: str, payload: Dict[str, Any]) -> dict:
        return self._json("PUT", f"/transactions/{urllib.parse.quote(str(txn_id), safe='')}", payload)

    def delete_transaction(self, txn_id: str) -> None:
        self._json("DELETE", f"/transactions/{urllib.parse.quote(str(txn_id), safe='')}")

    def summary(self) -> Dict[str, float]:
        return self._json("GET", "/summary")

    def summary_by_category(self, kind: str = "expense") -> List[dict]:
        return self._json("GET", "/summary/category", query={"type": kind})

    def summary_by_month(self) -> List[dict]:
        return self._json("GET", "/summary/month")

    def export(self, fmt: str = "csv") -> str:
        return self._request("GET", "/export", query={"format": fmt}).decode("utf-8")

    def clear(self) -> None:
        self._json("DELETE", "/clear")


# -----------------------------------------------------------------------------
# Same operations straight against a local data file (no server)
# -----------------------------------------------------------------------------

@dataclass
class LocalBackend:
    db_path: str
    config: Dict[str, Any]

    def list_transactions(self, **filters: Any) -> List[dict]:
        return database.query_transactions(self.db_path, **filters)

    def create_transaction(self, payload: Dict[str, Any]) -> dict:
        return database.create_transaction(self.db_path, payload)

    def update_transaction(self, txn_id: str, payload: Dict[str, Any]) -> dict:
        return database.update_transaction(self.db_path, txn_id, payload)

    def delete_transaction(self, txn_id: str) -> None:
        database.delete_transaction(self.db_path, txn_id)

    def summary(self) -> Dict[str, float]:
        return database.summarize_totals(self.db_path)

    def summary_by_category(self, kind: str = "expense") -> List[dict]:
        return database.summarize_by_category(self.db_path, kind)

    def summary_by_month(self) -> List[dict]:
        return database.summarize_by_month(self.db_path)

    def export(self, fmt: str = "csv") -> str:
        return get_output(fmt, self.config).render(database.query_transactions(self.db_path))

    def clear(self) -> None:
        database.clear_transactions(self.db_path)
