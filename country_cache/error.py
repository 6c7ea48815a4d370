from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from country_cache.log import setup_logger

# Set up logger
exception_logger = setup_logger(__name__, "error.log")


# Custom Exception Classes


class BaseExceptionClass(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(BaseExceptionClass):
    pass


class UpstreamFetchError(BaseExceptionClass):
    """One of the remote data sources failed (transport, status or payload)."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(message)


class StoreError(BaseExceptionClass):
    pass


class RenderError(BaseExceptionClass):
    pass


def register_error_handler(app: FastAPI):
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        exception_logger.error(f"HTTP {exc.status_code}: {exc.detail}")
        return JSONResponse(
            content={"error": exc.detail},
            status_code=exc.status_code,
        )

    @app.exception_handler(ValidationError)
    async def pydantic_validation_error_handler(request: Request, exc: ValidationError):
        exception_logger.error(f"Pydantic validation error: {str(exc)}")
        return JSONResponse(
            content={"error": "Validation error", "details": exc.errors()},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(RequestValidationError)
    async def bad_request_error_handler(request: Request, exc: RequestValidationError):
        exception_logger.error(f"Bad request error: {str(exc)}")
        return JSONResponse(
            content={
                "error": "Invalid request parameters",
                "errors": exc.errors(),
            },
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError):
        exception_logger.error(f"Not found error: {str(exc)}")
        return JSONResponse(
            content={
                "error": str(exc.message) or "Not found"
            },
            status_code=status.HTTP_404_NOT_FOUND,
        )

    @app.exception_handler(UpstreamFetchError)
    async def upstream_fetch_error_handler(request: Request, exc: UpstreamFetchError):
        exception_logger.error(f"Upstream fetch error ({exc.source}): {str(exc)}")
        return JSONResponse(
            content={
                "error": "External data source unavailable",
                "details": str(exc.message)
            },
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        # details stay in the log, never in the response
        exception_logger.error(f"Store error: {str(exc)}")
        return JSONResponse(
            content={"error": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(RenderError)
    async def render_error_handler(request: Request, exc: RenderError):
        exception_logger.error(f"Render error: {str(exc)}")
        return JSONResponse(
            content={
                "error": "Internal server error",
                "details": "Countries were stored but the summary image could not be generated"
            },
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
