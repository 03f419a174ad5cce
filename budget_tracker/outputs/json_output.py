# budget_tracker/outputs/json_output.py

import json
from budget_tracker.outputs.base import BaseOutput


class JSONOutput(BaseOutput):
    """
    Dumps the full collection as an indented JSON array, the same shape
    the import loader accepts.
    """
    content_type = "application/json"
    filename = "transactions.json"

    def __init__(self, config):
        self.config = config

    def render(self, transactions):
        return json.dumps(list(transactions), indent=2, ensure_ascii=False)
