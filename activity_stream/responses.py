"""
Activity Stream API Response Utilities
JSON envelopes for successful responses and the error handler shared by all routes
"""
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, List, Optional, Tuple, Type
from datetime import datetime, timezone
import traceback

from .errors import ActivityError, NotFound, StoreFailure, ValidationFailure
from .logging_config import api_logger


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================
# SUCCESS RESPONSES
# ============================================================

def success(data: Any = None, message: str = None) -> Dict:
    """{"ok": true, "data": ..., "message": ...}"""
    body: Dict[str, Any] = {"ok": True, "timestamp": _timestamp()}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body


def deleted(data: Any = None) -> Dict:
    return success(data, "Deleted successfully")


def paginated(items: List, total: int, page: int = 1, per_page: int = 20) -> Dict:
    """One page of a feed plus the numbers a client needs to fetch the next"""
    pages = (total + per_page - 1) // per_page
    return {
        "ok": True,
        "data": items,
        "pagination": {
            "total": total,
            "page": page,
            "per_page": per_page,
            "total_pages": pages,
            "has_next": page < pages,
            "has_prev": page > 1,
        },
        "timestamp": _timestamp(),
    }


# ============================================================
# ERRORS
# ============================================================

class ApiException(HTTPException):
    """HTTPException with a machine-readable error code and optional details"""

    def __init__(self, status_code: int, message: str, error_code: str = None, details: Dict = None):
        self.error_code = error_code or f"ERR_{status_code}"
        self.details = details
        super().__init__(status_code=status_code, detail=message)


def forbidden(message: str = "Access denied"):
    raise ApiException(403, message, "FORBIDDEN")


def not_found(resource: str = "Resource", id: Any = None):
    raise ApiException(404, str(NotFound(resource, id)), "NOT_FOUND")


def server_error(message: str = "Internal server error"):
    raise ApiException(500, message, "INTERNAL_ERROR")


# Domain error -> (status, error code); checked in order, first match wins
DOMAIN_ERRORS: Tuple[Tuple[Type[ActivityError], int, str], ...] = (
    (NotFound, 404, "NOT_FOUND"),
    (ValidationFailure, 422, "VALIDATION_ERROR"),
    (StoreFailure, 500, "STORE_FAILURE"),
    (ActivityError, 400, "ACTIVITY_ERROR"),
)


def domain_error_status(exc: ActivityError) -> ApiException:
    """Translate a domain error raised below the routes into its API equivalent"""
    for error_type, status_code, error_code in DOMAIN_ERRORS:
        if isinstance(exc, error_type):
            break
    if isinstance(exc, StoreFailure):
        # Database messages stay in the logs
        return ApiException(status_code, "Activity store unavailable", error_code)
    details = {"field": exc.field} if isinstance(exc, ValidationFailure) and exc.field else None
    return ApiException(status_code, str(exc), error_code, details)


def _error_response(status_code: int, message: str, error_code: str,
                    details: Optional[Dict] = None, headers: Optional[Dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "error": message,
            "error_code": error_code,
            "details": details,
            "timestamp": _timestamp(),
        },
        headers=headers,
    )


# ============================================================
# EXCEPTION HANDLER
# ============================================================

async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render domain, API and framework errors in the shared error envelope"""
    if isinstance(exc, ActivityError):
        exc = domain_error_status(exc)

    if isinstance(exc, ApiException):
        api_logger.warning(
            f"API Error: {exc.detail}",
            status_code=exc.status_code,
            error_code=exc.error_code,
            path=request.url.path,
        )
        return _error_response(exc.status_code, exc.detail, exc.error_code, exc.details)

    if isinstance(exc, StarletteHTTPException):
        api_logger.warning(f"HTTP Error: {exc.detail}", status_code=exc.status_code, path=request.url.path)
        return _error_response(
            exc.status_code,
            exc.detail,
            f"HTTP_{exc.status_code}",
            headers=getattr(exc, "headers", None),
        )

    api_logger.error(
        f"Unexpected error: {exc}",
        error=exc,
        path=request.url.path,
        traceback=traceback.format_exc(),
    )
    return _error_response(500, "An unexpected error occurred", "INTERNAL_ERROR")
