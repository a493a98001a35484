"""Domain errors raised by the services.

Each class carries a machine-readable ``code``. The HTTP layer maps the
classes to status codes; services never build HTTP responses themselves.

    LedgerError
    +-- ValidationError   (also ValueError)   -> 400
    +-- NotFoundError     (also LookupError)  -> 404
    +-- ConflictError                         -> 409
"""

from __future__ import annotations


class LedgerError(Exception):
    code: str = 'LEDGER_ERROR'

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError, ValueError):
    code = 'VALIDATION_ERROR'


class NotFoundError(LedgerError, LookupError):
    code = 'NOT_FOUND'


class ConflictError(LedgerError):
    code = 'CONFLICT'


DUPLICATE_MEMO_MESSAGE = 'duplicate memo number not allowed'
