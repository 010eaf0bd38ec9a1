"""
Base service class for the HR services platform.
"""

import os
import time
import traceback
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config import ServiceConfig, get_config
from shared.errors import ErrorResponse, ServiceException
from shared.identity import ForwardedIdentity
from shared.logging import clear_context, configure_logging, get_logger, set_request_id, set_user_context
from shared.metrics import MetricsCollector


class BaseService:
    """Base service class with common functionality."""

    # Backends trust the identity headers set by the gateway.
    trust_identity_headers = True

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)

        configure_logging(service_name, self.config.log_level, json_logs=not self.config.is_development)
        self.logger = get_logger(f"{service_name}.service")
        self.metrics = MetricsCollector(service_name)
        self._start_time = time.time()

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self._setup_exception_handlers()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"HR services platform - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url=None if self.config.is_production else "/docs",
            redoc_url=None if self.config.is_production else "/redoc",
            lifespan=self._lifespan,
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.startup()
        try:
            yield
        finally:
            await self.shutdown()

    async def startup(self):
        """Open resources before the first request; subclasses extend this."""

    async def shutdown(self):
        """Release resources after the last request; subclasses extend this."""

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @self.app.middleware("http")
        async def add_request_context(request: Request, call_next):
            start_time = time.time()
            request_id = set_request_id(request.headers.get("X-Request-ID"))

            identity = ForwardedIdentity.from_headers(request.headers) if self.trust_identity_headers else None
            if identity:
                set_user_context(identity.subject, identity.role)

            try:
                response = await call_next(request)

                duration = time.time() - start_time
                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=request.url.path,
                    status_code=response.status_code,
                    duration=duration
                )
                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )

                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                clear_context()

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {
                "service": self.service_name,
                "status": "ok",
                "uptime_seconds": round(time.time() - self._start_time, 3),
                "version": "1.0.0",
                "commit": os.getenv("GIT_COMMIT", "unknown")
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(content=self.metrics.render(), media_type=CONTENT_TYPE_LATEST)

    def _setup_exception_handlers(self):
        """Render every failure with the uniform error envelope."""

        @self.app.exception_handler(ServiceException)
        async def service_exception_handler(request: Request, exc: ServiceException):
            log = self.logger.error if exc.status_code >= 500 else self.logger.warning
            log(
                "Request failed",
                kind=exc.kind,
                status_code=exc.status_code,
                message=exc.message,
                method=request.method,
                path=request.url.path,
            )
            self.metrics.record_error(exc.kind)
            return self.error_response(exc.status_code, exc.message, exc.errors, headers=exc.headers)

        @self.app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            errors = _format_validation_errors(exc.errors())
            self.logger.warning("Validation error", path=request.url.path, errors=errors)
            self.metrics.record_error("VALIDATION_ERROR")
            return self.error_response(400, "Validation error", errors)

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            if exc.status_code == 404 and exc.detail == "Not Found":
                message = f"Route not found - {request.url.path}"
            else:
                message = str(exc.detail)
            return self.error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            debug = None
            if not self.config.is_production:
                debug = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            return self.error_response(500, "Internal server error", debug=debug)

    def error_response(self, status_code: int, message: str, errors: Optional[List[Any]] = None,
                       debug: Optional[str] = None,
                       headers: Optional[Dict[str, str]] = None) -> JSONResponse:
        """Build a JSON response carrying the uniform error envelope."""
        body = ErrorResponse(status_code=status_code, message=message, errors=errors or None, error=debug)
        return JSONResponse(status_code=status_code, content=body.to_content(), headers=headers)

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )


def _format_validation_errors(raw_errors) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into ``{field, message}`` pairs."""
    formatted = []
    for error in raw_errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        formatted.append({
            "field": ".".join(location) or None,
            "message": error.get("msg", "Invalid value"),
        })
    return formatted
