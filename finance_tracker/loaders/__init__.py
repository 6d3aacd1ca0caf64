# finance_tracker/loaders/__init__.py
from importlib import import_module
from pathlib import Path

LOADERS = {
    '.csv': 'finance_tracker.loaders.spreadsheet.SpreadsheetLoader',
    '.xlsx': 'finance_tracker.loaders.spreadsheet.SpreadsheetLoader',
    '.yaml': 'finance_tracker.loaders.manual.ManualLoader',
    '.yml': 'finance_tracker.loaders.manual.ManualLoader',
}


def get_loader(file_path, loaders=None):
    """Pick a loader class by file extension and return an instance."""
    registry = loaders or LOADERS
    suffix = Path(file_path).suffix.lower()
    if suffix not in registry:
        raise ValueError(f"No loader for '{suffix}' files: {file_path}")
    module_name, cls_name = registry[suffix].rsplit('.', 1)
    mod = import_module(module_name)
    return getattr(mod, cls_name)()
