"""
Custom exceptions for the habit tracker.
Validation problems are raised before any I/O; storage problems after it.
"""


class HabitLogException(Exception):
    """Base exception for the habit tracker"""
    pass


class ValidationError(HabitLogException):
    """Raised when an input value is malformed, out of range or missing"""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"Validation error for {field}: {message}")


class StorageError(HabitLogException):
    """Raised when a database operation fails"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Database {operation} failed: {details}")


class RecordNotFoundException(StorageError):
    """Raised when an update targets a record missing from the user's partition"""
    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"update {kind}", f"{kind} with ID {record_id} not found")


class NotAuthenticated(HabitLogException):
    """Raised when no usable user identity is available"""
    def __init__(self, reason: str = "Not authenticated"):
        self.reason = reason
        super().__init__(reason)
