# finance_tracker/loaders/base.py
from abc import ABC, abstractmethod


class BaseLoader(ABC):
    @abstractmethod
    def load(self, file_path: str):
        """
        Yield raw transaction records (dicts) from file_path.
        Values are left as found; ingestion converts and validates them.
        """
        pass
