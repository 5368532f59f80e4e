from typing import Any, List, Optional

from fastapi.exceptions import RequestValidationError


class StoreError(Exception):
    """A query against the listing store failed."""

    def __init__(self, operation: str, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"{self.operation}: {self.message}"


class ApiError(Exception):
    """
    Error rendered to the client as a JSON body of the form
    {"error": ..., "details": ..., "code": ...}.

    details and code are only included when set.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        details: Optional[Any] = None,
        code: Optional[str] = None
    ):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details
        self.code = code

    def to_body(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        if self.code is not None:
            body["code"] = self.code
        return body


def validation_error_details(exc: RequestValidationError) -> List[dict]:
    """Flatten request validation errors into location/message/type entries."""
    return [
        {
            "location": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        }
        for error in exc.errors()
    ]
