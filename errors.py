# errors.py
"""
Domain errors raised by the services and agents.

Each error carries the HTTP status and label the gateway reports for it, so
callers can tell "not found" from "forbidden" from "bad input" from
"AI service unavailable".
"""


class InvoiceAppError(Exception):
    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ResourceNotFoundError(InvoiceAppError):
    status_code = 404
    error = "Not Found"

    @classmethod
    def for_id(cls, resource: str, resource_id) -> "ResourceNotFoundError":
        return cls(f"{resource} not found with id: {resource_id}")

    @classmethod
    def for_field(cls, resource: str, field: str, value) -> "ResourceNotFoundError":
        return cls(f"{resource} not found with {field}: '{value}'")


class InvalidRequestError(InvoiceAppError):
    status_code = 400
    error = "Bad Request"


class FileTooLargeError(InvalidRequestError):
    status_code = 413
    error = "File Too Large"


class UnauthorizedError(InvoiceAppError):
    status_code = 403
    error = "Forbidden"


class AiServiceError(InvoiceAppError):
    status_code = 503
    error = "AI Service Error"


class FileProcessingError(InvoiceAppError):
    status_code = 422
    error = "File Processing Error"
