from fastapi import HTTPException, status


class LedgerError(HTTPException):
    """
    Base class for every rejected registry operation.
    Carries a stable error code so callers can tell a wrong role apart
    from a wrong state without parsing the message.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    code = "LedgerError"

    def __init__(self, message: str):
        self.message = message
        super().__init__(
            status_code=self.status_code,
            detail={"code": self.code, "message": message}
        )

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class Unauthorized(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "Unauthorized"


class InvalidArgument(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "InvalidArgument"


class AlreadyExists(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    code = "AlreadyExists"


class AlreadyAssigned(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    code = "AlreadyAssigned"


class NotFound(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NotFound"


class InvalidTransition(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    code = "InvalidTransition"


class InvalidRole(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "InvalidRole"
