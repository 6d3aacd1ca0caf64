# finance_tracker/loaders/spreadsheet.py
from pathlib import Path

import pandas as pd

from finance_tracker.loaders.base import BaseLoader

_REQUIRED = ('date', 'category', 'amount')


class SpreadsheetLoader(BaseLoader):
    """
    Loader for CSV or Excel exports with a header row somewhere near the top.
    Required columns: date, category, amount. Optional: description, comment.
    """

    def _read(self, file_path, header):
        if Path(file_path).suffix.lower() == '.xlsx':
            return pd.read_excel(file_path, header=header, dtype=str, engine='openpyxl')
        return pd.read_csv(file_path, header=header, dtype=str, keep_default_na=False)

    def load(self, file_path):
        # 1. Detect header row
        raw = self._read(file_path, header=None)
        header_row = None
        for idx, row in raw.iterrows():
            vals = [str(v).strip().lower() for v in row.values if pd.notna(v)]
            if all(name in vals for name in _REQUIRED):
                header_row = idx
                break
        if header_row is None:
            raise RuntimeError(f"Could not locate header row in {file_path}")

        # 2. Read with that header
        df = self._read(file_path, header=header_row)

        # 3. Column lookup
        cols = {str(c).strip().lower(): c for c in df.columns}
        def find(frag):
            if frag in cols:
                return cols[frag]
            return next((orig for low, orig in cols.items() if frag in low), None)

        date_col = find('date')
        cat_col = find('category')
        amt_col = find('amount')
        desc_col = find('description')
        comment_col = find('comment')

        # 4. Yield raw records; blank lines are not transactions
        for _, row in df.iterrows():
            values = {
                'date': row[date_col],
                'category': row[cat_col],
                'description': row[desc_col] if desc_col is not None else '',
                'amount': row[amt_col],
                'comment': row[comment_col] if comment_col is not None else None,
            }
            values = {k: (None if pd.isna(v) else v) for k, v in values.items()}
            if not any(str(v).strip() for v in values.values() if v is not None):
                continue
            yield values
