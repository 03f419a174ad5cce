from __future__ import annotations

import logging
from typing import Dict

from budget_tracker.client import TransactionBackend
from budget_tracker.loaders import get_loader, loader_name_for

logger = logging.getLogger(__name__)


class ImportAborted(RuntimeError):
    """A row failed to import; rows before it were already created."""

    def __init__(self, imported: int, row: int, cause: Exception) -> None:
        super().__init__(f"Import stopped at row {row} after {imported} created: {cause}")
        self.imported = imported
        self.row = row
        self.cause = cause


def import_file(path: str, backend: TransactionBackend, config: Dict[str, object]) -> int:
    """Create one transaction per row of ``path``, in order.

    Each row goes through ``backend.create_transaction`` on its own. There
    is no rollback: when a row fails, the rows before it stay imported and
    ``ImportAborted`` reports how many there were.
    """
    loader = get_loader(loader_name_for(path), config)
    imported = 0
    rows = loader.load(path)
    while True:
        try:
            payload = next(rows)
        except StopIteration:
            break
        except (ValueError, RuntimeError) as exc:
            raise ImportAborted(imported, imported + 1, exc) from exc
        try:
            backend.create_transaction(payload)
        except Exception as exc:
            logger.error("Import of %s failed at row %d: %s", path, imported + 1, exc)
            raise ImportAborted(imported, imported + 1, exc) from exc
        imported += 1
    logger.info("Imported %d transaction(s) from %s", imported, path)
    return imported
