from fastapi import status


class RegistryError(Exception):
    """Base class for every rejected ledger transition.

    Each failure is a precondition failure: it is raised before the transition
    commits, so the ledger is left exactly as it was before the call.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_type: str = "registry_error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class Unauthorized(RegistryError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "unauthorized"


class NotFound(RegistryError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"


class InvalidInput(RegistryError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "invalid_input"


class AlreadyRegistered(RegistryError):
    status_code = status.HTTP_409_CONFLICT
    error_type = "already_registered"


class AlreadyRetired(RegistryError):
    status_code = status.HTTP_409_CONFLICT
    error_type = "already_retired"


class SelfTransfer(RegistryError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "self_transfer"


class InsufficientPayment(RegistryError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    error_type = "insufficient_payment"


class InactiveOrFullyFunded(RegistryError):
    status_code = status.HTTP_409_CONFLICT
    error_type = "inactive_or_fully_funded"


class PaymentFailed(RegistryError):
    status_code = status.HTTP_502_BAD_GATEWAY
    error_type = "payment_failed"
