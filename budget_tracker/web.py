from __future__ import annotations

import argparse
import json
import logging
import math
import os
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from budget_tracker.config import load_config
from budget_tracker.database import (
    NotFoundError,
    ValidationError,
    clear_transactions,
    create_transaction,
    delete_transaction,
    query_transactions,
    summarize_by_category,
    summarize_by_month,
    summarize_totals,
    update_transaction,
)
from budget_tracker.outputs import get_output

logger = logging.getLogger(__name__)

TRANSACTION_PREFIX = "/api/transactions/"


def _parse_float(value: str | None, name: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except ValueError:
        raise ValidationError(f"{name} must be a number")
    if math.isnan(number):
        raise ValidationError(f"{name} must be a number")
    return number


def _get_param(query: dict[str, list[str]], key: str) -> str | None:
    values = query.get(key)
    return values[0] if values else None


def _send(handler: BaseHTTPRequestHandler, body: bytes, content_type: str, status: int = 200,
          headers: dict[str, str] | None = None) -> None:
    handler.send_response(status)
    handler.send_header("Content-Type", content_type)
    handler.send_header("Cache-Control", "no-store")
    handler.send_header("Access-Control-Allow-Origin", "*")
    for name, value in (headers or {}).items():
        handler.send_header(name, value)
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def _json_response(handler: BaseHTTPRequestHandler, payload: Any, status: int = 200) -> None:
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    _send(handler, body, "application/json", status)


class BudgetApiHandler(BaseHTTPRequestHandler):
    db_path = "data.json"
    config: dict = {}

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        self._dispatch("GET")

    def do_POST(self) -> None:
        self._dispatch("POST")

    def do_PUT(self) -> None:
        self._dispatch("PUT")

    def do_DELETE(self) -> None:
        self._dispatch("DELETE")

    def do_OPTIONS(self) -> None:
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, PUT, DELETE, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _read_json(self) -> dict:
        length = int(self.headers.get("Content-Length") or 0)
        if not length:
            return {}
        raw = self.rfile.read(length)
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError(f"Invalid JSON body: {exc}")
        if not isinstance(payload, dict):
            raise ValidationError("JSON body must be an object")
        return payload

    def _dispatch(self, method: str) -> None:
        parsed = urlparse(self.path)
        try:
            if not self._route(method, parsed.path, parse_qs(parsed.query)):
                _json_response(self, {"error": "not found"}, status=404)
        except ValidationError as exc:
            _json_response(self, {"error": str(exc)}, status=400)
        except NotFoundError as exc:
            _json_response(self, {"error": str(exc)}, status=404)
        except Exception as exc:
            logger.exception("%s %s failed", method, self.path)
            _json_response(self, {"error": str(exc)}, status=500)

    def _route(self, method: str, path: str, query: dict[str, list[str]]) -> bool:
        if path == "/api/transactions":
            if method == "GET":
                payload = query_transactions(
                    self.db_path,
                    category=_get_param(query, "category"),
                    min_amount=_parse_float(_get_param(query, "min"), "min"),
                    max_amount=_parse_float(_get_param(query, "max"), "max"),
                    sort_by=_get_param(query, "sortBy"),
                    sort_dir=_get_param(query, "order") or "asc",
                )
                _json_response(self, payload)
                return True
            if method == "POST":
                _json_response(self, create_transaction(self.db_path, self._read_json()))
                return True
            return False

        if path.startswith(TRANSACTION_PREFIX):
            txn_id = unquote(path[len(TRANSACTION_PREFIX):])
            if not txn_id:
                return False
            if method == "PUT":
                _json_response(self, update_transaction(self.db_path, txn_id, self._read_json()))
                return True
            if method == "DELETE":
                delete_transaction(self.db_path, txn_id)
                _json_response(self, {"success": True})
                return True
            return False

        if method == "GET" and path == "/api/summary":
            _json_response(self, summarize_totals(self.db_path))
            return True

        if method == "GET" and path == "/api/summary/category":
            kind = _get_param(query, "type") or "expense"
            _json_response(self, summarize_by_category(self.db_path, kind))
            return True

        if method == "GET" and path == "/api/summary/month":
            _json_response(self, summarize_by_month(self.db_path))
            return True

        if method == "GET" and path == "/api/export":
            fmt = _get_param(query, "format") or "csv"
            try:
                output = get_output(fmt, self.config)
            except ValueError as exc:
                raise ValidationError(str(exc))
            body = output.render(query_transactions(self.db_path)).encode("utf-8")
            _send(
                self,
                body,
                output.content_type,
                headers={"Content-Disposition": f'attachment; filename="{output.filename}"'},
            )
            return True

        if method == "DELETE" and path == "/api/clear":
            clear_transactions(self.db_path)
            _json_response(self, {"success": True})
            return True

        return False


def make_server(config: dict, host: str | None = None, port: int | None = None) -> ThreadingHTTPServer:
    """Build (but do not start) a server bound to ``host:port``.

    Port 0 picks a free port; read it back from ``server.server_address``.
    """
    handler = type(
        "BudgetApiHandler",
        (BudgetApiHandler,),
        {"db_path": str(config["data_file"]), "config": config},
    )
    bind_host = host if host is not None else config["host"]
    bind_port = port if port is not None else int(config["port"])
    return ThreadingHTTPServer((bind_host, bind_port), handler)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("BUDGET_TRACKER_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def serve(config: dict, host: str | None = None, port: int | None = None) -> None:
    server = make_server(config, host, port)
    bound_host, bound_port = server.server_address[:2]
    logger.info("Budget tracker API running at http://%s:%s/api (data: %s)",
                bound_host, bound_port, config["data_file"])
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Budget tracker transaction API")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    parser.add_argument("--data-file", default=None, help="Path to the JSON data file")
    parser.add_argument("--host", default=None, help="Host to bind (default from config: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind (default from config: 3000)")
    args = parser.parse_args()

    configure_logging()
    config = load_config(args.config)
    if args.data_file:
        config["data_file"] = args.data_file
    serve(config, args.host, args.port)


if __name__ == "__main__":
    main()
