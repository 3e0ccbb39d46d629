# util/errors.py
from typing import Optional
from fastapi import HTTPException, status
from util.enums import ErrorCode


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)


class PipelineError(Exception):
    """
    Unrecoverable pipeline condition. The stream coordinator turns it into an
    `error` event; the JSON endpoint turns it into an AppError.
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ProviderError(PipelineError):
    """Embedding or completion provider returned non-success or an undecodable body."""

    def __init__(
        self, message: str, status_code: Optional[int] = None, body: str = ""
    ) -> None:
        if status_code is not None:
            message = f"{message} (status {status_code})"
        if body:
            message = f"{message}: {body}"
        super().__init__(ErrorCode.PROVIDER_ERROR, message)
        self.status_code = status_code
        self.body = body


class MalformedModelOutput(PipelineError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.MALFORMED_MODEL_OUTPUT, message)
