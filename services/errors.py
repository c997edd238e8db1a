"""Domain errors shared by services and mapped to HTTP statuses by main.py."""
from __future__ import annotations
from typing import Any, Optional


class ServiceError(Exception):
    status_code = 500
    code = "service_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError):
    status_code = 400
    code = "validation_error"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"


class StorageError(ServiceError):
    status_code = 500
    code = "storage_error"


class InsufficientFundsError(ValidationError):
    def __init__(self, needed: float, available: float):
        super().__init__("Insufficient balance", {"needed": needed, "available": available})
        self.needed = needed
        self.available = available


class InsufficientSharesError(ValidationError):
    def __init__(self, symbol: str, have: int, want: int):
        super().__init__("Insufficient shares to sell", {"symbol": symbol, "have": have, "want": want})
        self.symbol = symbol
        self.have = have
        self.want = want


class ConcurrentUpdateError(ConflictError):
    """The user row changed between read and conditional write."""

    def __init__(self, user_id: str):
        super().__init__("Balance was modified concurrently; retry the request", {"userId": user_id})
        self.user_id = user_id
