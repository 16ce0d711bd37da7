"""
Response envelope schemas.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SuccessResponse(BaseModel):
    """Envelope for successful responses."""

    success: bool = True
    data: Optional[Any] = None
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Envelope for error responses."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    code: int = Field(..., description="HTTP status code")
    message: str
    error_code: str = Field(..., serialization_alias="errorCode")
    details: Optional[Any] = None
