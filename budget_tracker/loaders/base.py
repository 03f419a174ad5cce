# budget_tracker/loaders/base.py
from abc import ABC, abstractmethod

class BaseLoader(ABC):
    @abstractmethod
    def load(self, file_path: str):
        """
        Yield create payloads (dicts) parsed from file_path, in file order.
        """
        pass
