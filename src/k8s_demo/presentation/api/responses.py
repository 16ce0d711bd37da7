"""
JSON envelope helpers.

Optional envelope fields are omitted from the body when empty.
"""

from typing import Any, Optional

from fastapi import Response, status
from fastapi.responses import JSONResponse

from k8s_demo.presentation.schemas import ErrorResponse, SuccessResponse


def respond_success(
    status_code: int, message: Optional[str] = None, data: Optional[Any] = None
) -> Response:
    """Build a success envelope response."""
    if status_code == status.HTTP_204_NO_CONTENT:
        return Response(status_code=status_code)

    body = SuccessResponse(data=data, message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def respond_error(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Any] = None,
) -> JSONResponse:
    """Build an error envelope response."""
    body = ErrorResponse(
        code=status_code,
        error_code=error_code,
        message=message,
        details=details,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )
