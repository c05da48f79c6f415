"""Exceptions raised by the reconciliation core."""


class ReconciliationError(Exception):
    """Base exception for settlement reconciliation."""

    pass


class MalformedInputError(ReconciliationError):
    """The settlement report is empty, unreadable or has no header row."""

    pass


class DivisionUndefinedError(ReconciliationError):
    """Fee proration over an invoice whose line quantities sum to zero."""

    def __init__(self, message: str, total_fee: object = None):
        super().__init__(message)
        self.total_fee = total_fee


class InvoiceLookupError(ReconciliationError):
    """The invoice source could not answer for a customer."""

    pass
