"""
Store errors

Every failure the storefront components can report. Each error carries the
user-facing message and the HTTP status the API layer answers with.
"""


class StoreError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(StoreError):
    status_code = 404
    default_message = "Not found"


class ValidationError(StoreError):
    status_code = 400
    default_message = "Invalid request"


class PayloadTooLargeError(StoreError):
    status_code = 413
    default_message = "File too large"


class StorageError(StoreError):
    status_code = 500
    default_message = "Storage failure"


class EmptyCartError(StoreError):
    status_code = 400
    default_message = "Cart is empty"
