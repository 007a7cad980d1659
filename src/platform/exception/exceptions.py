class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class ForbiddenError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 403)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class AuthenticationError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 401)


class StepTransitionError(CustomBaseError):
    """Illegal wizard transition (e.g. advancing past the payment step)"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class PaymentValidationError(CustomBaseError):
    """Draft is not payable yet - nothing was sent to the gateway"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


class RejectionError(CustomBaseError):
    """Backend refused the request on business grounds (coupon invalid, gateway not configured)"""

    def __init__(self, message: str, status_code: int = 422) -> None:
        super().__init__(message, status_code)


class BackendUnavailableError(CustomBaseError):
    """Transport failure or 5xx from the booking backend"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 503)


class PaidButUnrecordedError(CustomBaseError):
    """Payment was captured and verified but no booking record exists"""

    def __init__(self, message: str, *, payment_id: str, order_id: str) -> None:
        super().__init__(message, 409)
        self.payment_id = payment_id
        self.order_id = order_id
