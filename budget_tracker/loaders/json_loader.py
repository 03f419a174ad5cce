# budget_tracker/loaders/json_loader.py

import json
import math
from budget_tracker.core.models import DEFAULT_CATEGORY, EXPENSE
from budget_tracker.loaders.base import BaseLoader
from budget_tracker.utils import generate_id, today_iso


class JSONLoader(BaseLoader):
    """
    Loader for a JSON array of transaction-like objects, such as the
    JSON export. Missing values fall back to: a new id, today's date,
    type "expense", category "Other". The amount is taken as a magnitude
    and the type decides its sign.
    """
    def load(self, file_path):
        with open(file_path, encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array of transactions in {file_path}")

        for idx, item in enumerate(data):
            if not isinstance(item, dict):
                raise ValueError(f"Entry {idx} in {file_path} is not an object: {item!r}")
            try:
                amount = abs(float(item.get('amount') or 0))
            except (TypeError, ValueError):
                raise ValueError(f"Could not parse amount '{item.get('amount')}' in {file_path}")
            if not math.isfinite(amount):
                raise ValueError(f"Amount '{item.get('amount')}' in {file_path} is not a finite number")
            yield {
                'id': item.get('id') or generate_id(),
                'date': item.get('date') or today_iso(),
                'type': item.get('type') or EXPENSE,
                'category': item.get('category') or DEFAULT_CATEGORY,
                'amount': amount,
                'notes': item.get('notes') or item.get('description') or '',
                'recurring': bool(item.get('recurring')),
            }
