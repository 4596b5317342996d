from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tempo.core.errors import AdviceError

INVALID_REQUEST_CODE = "INVALID_REQUEST"


def error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})


def advice_error_response(exc: AdviceError, status_code: Optional[int] = None) -> JSONResponse:
    return error_response(status_code or exc.status_code or status.HTTP_400_BAD_REQUEST, str(exc), exc.code)


def _describe(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, _describe(exc), INVALID_REQUEST_CODE)
