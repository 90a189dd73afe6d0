from fastapi import HTTPException, status


class LexLinkException(HTTPException):
    code = "internal_error"

    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(LexLinkException):
    code = "not_found"

    def __init__(self, resource: str, resource_id: str | None = None):
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} '{resource_id}' not found"
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class PermissionDeniedError(LexLinkException):
    code = "permission_denied"

    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class BadRequestError(LexLinkException):
    code = "bad_request"

    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST)


class ConflictError(LexLinkException):
    code = "conflict"

    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_409_CONFLICT)


class ValidationError(LexLinkException):
    """Malformed search filter or monetary amount."""

    code = "validation_error"

    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class InvalidCoordinateError(ValidationError):
    code = "invalid_coordinate"

    def __init__(self, latitude: float, longitude: float):
        self.latitude = latitude
        self.longitude = longitude
        super().__init__(f"Invalid coordinate ({latitude}, {longitude})")


class InvalidTransitionError(LexLinkException):
    code = "invalid_transition"

    def __init__(self, entity: str, current: str, action: str, reason: str | None = None):
        self.entity = entity
        self.current = current
        self.action = action
        detail = f"Cannot {action} {entity} in state '{current}'"
        if reason:
            detail += f": {reason}"
        super().__init__(detail=detail, status_code=status.HTTP_409_CONFLICT)


class TerminalStateViolationError(LexLinkException):
    code = "terminal_state_violation"

    def __init__(self, entity: str, current: str, action: str):
        self.entity = entity
        self.current = current
        self.action = action
        super().__init__(
            detail=f"{entity.capitalize()} is in terminal state '{current}'; '{action}' is not allowed",
            status_code=status.HTTP_409_CONFLICT,
        )


class UnknownCurrencyError(LexLinkException):
    code = "unknown_currency"

    def __init__(self, currency_code: str):
        self.currency_code = currency_code
        super().__init__(
            detail=f"Unknown currency '{currency_code}'",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
