# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class ContentType(str, Enum):
    HTML = "html"
    PDF = "pdf"
    UNKNOWN = "unknown"


class ErrorCode(str, Enum):
    FETCH_FAILED = "fetch_failed"
    EXTRACTION_EMPTY = "extraction_empty"
    PROVIDER_ERROR = "provider_error"
    MALFORMED_MODEL_OUTPUT = "malformed_model_output"
    INVALID_REQUEST = "invalid_request"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    INVALID_REQUEST = ErrorInfo(
        "Invalid request (missing URL or question)", status.HTTP_400_BAD_REQUEST
    )
    FETCH_FAILED = ErrorInfo("Unable to fetch remote content", status.HTTP_502_BAD_GATEWAY)
    EXTRACTION_EMPTY = ErrorInfo(
        "Unable to extract the main content of the page",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    PROVIDER_ERROR = ErrorInfo("Upstream provider error", status.HTTP_502_BAD_GATEWAY)
    MALFORMED_MODEL_OUTPUT = ErrorInfo(
        "The model returned an invalid summary", status.HTTP_422_UNPROCESSABLE_ENTITY
    )
    INTERNAL_ERROR = ErrorInfo("Internal Error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    @classmethod
    def for_code(cls, code: ErrorCode) -> "ErrorMessage":
        return cls[code.name]
