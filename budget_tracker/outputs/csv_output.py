# budget_tracker/outputs/csv_output.py

import csv
import io
from decimal import Decimal
from budget_tracker.outputs.base import BaseOutput

HEADER = ['ID', 'Description', 'Amount', 'Category', 'Date']


class CSVOutput(BaseOutput):
    """
    Renders every transaction as one CSV row under the
    ID,Description,Amount,Category,Date header. Amounts keep their sign so
    the importer can recover the transaction type.
    """
    content_type = "text/csv"
    filename = "transactions.csv"

    def __init__(self, config):
        self.config = config

    def render(self, transactions):
        buf = io.StringIO()
        # csv handles quotes, commas and newlines inside descriptions
        writer = csv.writer(buf, lineterminator='\n')
        writer.writerow(HEADER)
        for tx in transactions:
            writer.writerow([
                tx.get('id', ''),
                tx.get('description') or tx.get('notes') or '',
                _format_amount(tx.get('amount', 0)),
                tx.get('category', ''),
                tx.get('date', ''),
            ])
        return buf.getvalue().rstrip('\n')


def _format_amount(value):
    amount = float(value or 0)
    if amount.is_integer():
        return str(int(amount))
    # shortest repr digits, never in exponent form
    return format(Decimal(repr(amount)), "f")
