# finance_tracker/errors.py


class FinanceTrackerError(Exception):
    """Base class for every error raised by finance_tracker."""


class ParseError(FinanceTrackerError, ValueError):
    """A single amount or date field could not be interpreted."""

    def __init__(self, field, value, reason=None):
        self.field = field
        self.value = value
        self.reason = reason
        message = f"Could not parse {field} {value!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class DivisionUndefined(FinanceTrackerError, ArithmeticError):
    """A ratio was requested over a zero denominator."""


class OrphanBudgetError(FinanceTrackerError):
    """A budget references a category that no longer exists."""

    def __init__(self, budget_id, category_id):
        self.budget_id = budget_id
        self.category_id = category_id
        super().__init__(
            f"Budget {budget_id} references missing category {category_id}"
        )


class DuplicateBudgetError(FinanceTrackerError):
    """A second budget was requested for an already budgeted category."""

    def __init__(self, category_id, existing_id=None):
        self.category_id = category_id
        self.existing_id = existing_id
        super().__init__(f"Category {category_id} already has a budget")


class ReportInputError(FinanceTrackerError):
    """The input collection itself is unusable; the whole report is aborted."""


class ConfigError(FinanceTrackerError):
    """The configuration file has an unexpected shape."""
