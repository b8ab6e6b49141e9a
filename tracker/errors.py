"""Exception types raised by the tracker core."""


class InvoiceValidationError(ValueError):
    """Form input rejected before any write (missing number, no items ...)."""


class InvoiceNotFoundError(LookupError):
    """The referenced invoice does not exist (or has since been deleted)."""


class StoreError(RuntimeError):
    """A read or write against the record store failed."""
