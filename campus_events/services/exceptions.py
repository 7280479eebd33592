from campus_events.services.error_codes import ErrorCode


class ServiceError(Exception):
    default_code: ErrorCode | None = None

    def __init__(self, code: str | None = None, message: str | None = None) -> None:
        if code is None and self.default_code is not None:
            code = self.default_code.value
        self.code = code or type(self).__name__
        self.message = message or self.code
        super().__init__(self.message)


class NotFoundError(ServiceError):
    pass


class PermissionDeniedError(ServiceError):
    pass


class ConflictError(ServiceError):
    pass


class CapacityExceededError(ConflictError):
    default_code = ErrorCode.EVENT_FULL


class AlreadyRegisteredError(ConflictError):
    default_code = ErrorCode.ALREADY_REGISTERED


class ScheduleConflictError(ConflictError):
    default_code = ErrorCode.SCHEDULE_CONFLICT


class ValidationError(ServiceError):
    default_code = ErrorCode.INVALID_INPUT


class BackendUnavailableError(ServiceError):
    """Transport or storage failure; callers may retry with backoff."""

    default_code = ErrorCode.BACKEND_UNAVAILABLE
