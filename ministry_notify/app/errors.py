from fastapi import Request, status
from fastapi.responses import JSONResponse

# Callable error codes and the HTTP status each maps to
CALLABLE_ERROR_STATUS = {
    "invalid-argument": status.HTTP_400_BAD_REQUEST,
    "failed-precondition": status.HTTP_400_BAD_REQUEST,
    "unauthenticated": status.HTTP_401_UNAUTHORIZED,
    "permission-denied": status.HTTP_403_FORBIDDEN,
    "not-found": status.HTTP_404_NOT_FOUND,
    "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class CallableError(Exception):
    """A labeled failure returned to callers of an RPC endpoint."""

    def __init__(self, code: str, message: str):
        if code not in CALLABLE_ERROR_STATUS:
            raise ValueError(f"Unknown callable error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def http_status(self) -> int:
        return CALLABLE_ERROR_STATUS[self.code]

    def to_response_body(self) -> dict:
        return {
            "error": {
                "status": self.code.upper().replace("-", "_"),
                "message": self.message,
            }
        }


async def callable_error_handler(request: Request, exc: CallableError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_response_body())
