"""Exceptions raised by the persistence and extraction layers."""


class ReceiptDeskError(Exception):
    """Base exception for receipt-desk errors."""

    pass


class StoreError(ReceiptDeskError):
    """Raised when a remote store operation fails."""

    def __init__(self, operation: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.status_code = status_code


class StoreNotConfiguredError(StoreError):
    """Raised when the store URL or service key is missing."""

    def __init__(self, operation: str) -> None:
        super().__init__(operation, "Supabase is not configured")


class ReceiptNotFoundError(StoreError):
    """Raised when a receipt id does not exist."""

    def __init__(self, receipt_id: str) -> None:
        super().__init__("fetch receipt", "Receipt not found", status_code=404)
        self.receipt_id = receipt_id


class ExtractionError(ReceiptDeskError):
    """Raised when an extractor cannot produce a structured receipt."""

    def __init__(self, message: str, raw_response: str | None = None) -> None:
        super().__init__(message)
        self.raw_response = raw_response
