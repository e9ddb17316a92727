class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int = 500) -> None:
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


class PastScheduleSlotError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 422)


class AlreadyAssignedError(ConflictError):
    pass


class CapacityExceededError(ConflictError):
    def __init__(self, *, vehicle_name: str, current: int, effective: int) -> None:
        self.vehicle_name = vehicle_name
        self.current = current
        self.effective = effective
        super().__init__(f'Vehicle {vehicle_name} is at full capacity ({current}/{effective})')


class TransactionConflictError(ConflictError):
    """Raised when the database aborts a transaction because of a concurrent writer."""
