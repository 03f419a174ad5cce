# budget_tracker/outputs/base.py
from abc import ABC, abstractmethod

class BaseOutput(ABC):
    content_type = "text/plain; charset=utf-8"
    filename = "transactions.txt"

    @abstractmethod
    def render(self, transactions):
        """Render transaction dicts into the export document text."""
        pass
