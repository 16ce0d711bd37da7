"""
API schemas.
"""

from k8s_demo.presentation.schemas.response_schemas import (
    ErrorResponse,
    SuccessResponse,
)

__all__ = ["ErrorResponse", "SuccessResponse"]
