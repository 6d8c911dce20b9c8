"""
Banking Error Hierarchy

Every error raised by the registry, the ledger mutator and the banking
facade derives from BankingError. All of them are recoverable at the point
of the user action: the caller reports the message and the user resubmits.
"""


class BankingError(Exception):
    """Base exception for all SecureBank errors"""


class ValidationError(BankingError, ValueError):
    """Raised when registration or request input is malformed or missing"""


class AuthError(BankingError):
    """
    Raised when credentials do not match.

    Unknown account numbers and wrong passwords produce the same error so
    that callers cannot tell which accounts exist.
    """

    def __init__(self, message: str = "Invalid account number or password"):
        super().__init__(message)


class InvalidAmount(ValidationError):
    """Raised when an amount is non-numeric, non-finite or not positive"""


class InsufficientFunds(BankingError, ValueError):
    """Raised when a debit exceeds the available balance"""


class NotFound(BankingError, LookupError):
    """Raised when an account lookup misses"""


class RecipientNotFound(NotFound):
    """Raised when the target of a transfer is not in the registry"""
