# finance_tracker/loaders/manual.py
import yaml

from finance_tracker.loaders.base import BaseLoader


class ManualLoader(BaseLoader):
    """Load hand-written transactions from a YAML list of mappings."""

    def load(self, file_path):
        with open(file_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or []
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of transactions in {file_path}")

        for entry in data:
            if not isinstance(entry, dict):
                raise ValueError(f"Malformed manual entry: {entry}")
            # YAML turns unquoted dates into date objects; keep them as-is
            yield {
                'date': entry.get('date'),
                'category': entry.get('category'),
                'description': entry.get('description', ''),
                'amount': entry.get('amount'),
                'comment': entry.get('comment'),
            }
