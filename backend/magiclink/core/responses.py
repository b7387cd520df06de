"""Response envelope models.

Settings endpoints answer with ``{"data": ...}``; every error answers with
``{"error": {...}}``. The token endpoints keep their own flat shapes
(``{jwt, user}`` and ``{success}``) because clients consume them directly.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    Usage:
        @router.get("/admin/settings")
        async def get_settings(...) -> DataResponse[EmailTemplateSettingsSchema]:
            return DataResponse(data=...)
    """

    data: T


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "UNAUTHORIZED").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope.

    Usage in exception handlers:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=ErrorDetail(code=exc.code, message=exc.message)
            ).model_dump(),
        )
    """

    error: ErrorDetail
