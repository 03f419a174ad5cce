# budget_tracker/loaders/csv_loader.py

import math
import re
import pandas as pd
from budget_tracker.core.models import DEFAULT_CATEGORY, type_for_amount
from budget_tracker.loaders.base import BaseLoader
from budget_tracker.utils import generate_id, today_iso

_CLEAN_AMOUNT = re.compile(r"[^\d\-.]")


class CSVLoader(BaseLoader):
    """
    Loader for CSV files with a header row, such as the CSV export.
    Columns are looked up by header name (case-insensitive):
      ID, Date, Amount, Category, Description
    Only Amount is required. Its sign decides the type (>= 0 is income)
    and its magnitude becomes the amount.
    """
    def load(self, file_path):
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False, skipinitialspace=True)

        cols = {str(c).strip().lower(): c for c in df.columns}
        def find(name):
            return cols.get(name)

        amt_col = find('amount')
        if amt_col is None:
            raise RuntimeError(f"Missing required column 'amount' in {file_path}")
        id_col = find('id')
        date_col = find('date')
        cat_col = find('category')
        desc_col = find('description') or find('notes')

        def cell(row, col):
            return str(row[col]).strip() if col is not None else ''

        for _, row in df.iterrows():
            amt_raw = cell(row, amt_col)
            cleaned = _CLEAN_AMOUNT.sub('', amt_raw)
            try:
                amount = float(cleaned) if cleaned else 0.0
            except ValueError:
                raise ValueError(f"Could not parse amount '{amt_raw}' in {file_path}")
            if not math.isfinite(amount):
                raise ValueError(f"Amount '{amt_raw}' in {file_path} is not a finite number")

            yield {
                'id': cell(row, id_col) or generate_id(),
                'date': cell(row, date_col) or today_iso(),
                'type': type_for_amount(amount),
                'category': cell(row, cat_col) or DEFAULT_CATEGORY,
                'amount': abs(amount),
                'notes': cell(row, desc_col),
            }
