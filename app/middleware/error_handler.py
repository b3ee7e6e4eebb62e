"""
Global error handling middleware.
"""
import logging
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from app.domain.exceptions import (
    AllSourcesFailed,
    FarmDataError,
    PersistenceFailure,
)


logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches domain and unhandled exceptions and returns consistent error
    responses of the form ``{"error": ..., "detail": ...}``.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        try:
            response = await call_next(request)
            return response

        except PersistenceFailure as e:
            logger.error(
                f"Persistence failure: {e.message}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            result = e.result
            if isinstance(result, BaseModel):
                result = result.model_dump(mode="json", by_alias=True)
            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": "Persistence failure",
                    "detail": e.message,
                    "result": jsonable_encoder(result),
                }
            )

        except AllSourcesFailed as e:
            logger.error(
                f"All sources failed: {e.failures}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": "All data sources failed",
                    "detail": e.message,
                    "sources": e.failures,
                }
            )

        except FarmDataError as e:
            # 4xx at warning, 5xx at error
            log = logger.warning if e.status_code < 500 else logger.error
            log(
                f"{type(e).__name__}: {e.message}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": e.status_code,
                }
            )
            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": type(e).__name__,
                    "detail": e.message,
                }
            )

        except Exception as e:
            # Log unexpected errors
            logger.exception(
                f"Unhandled exception: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred",
                }
            )
