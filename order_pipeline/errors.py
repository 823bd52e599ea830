from __future__ import annotations


class CheckoutError(Exception):
    """Base for errors that map onto a structured response."""

    code = "Internal"
    status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(CheckoutError):
    code = "NotFound"
    status = 404


class InsufficientFundsError(CheckoutError):
    code = "InsufficientFunds"
    status = 402


class InvalidOrderError(CheckoutError):
    code = "InvalidOrder"
    status = 400


class NotAllowedError(CheckoutError):
    code = "NotAllowed"
    status = 403


class InternalError(CheckoutError):
    pass
