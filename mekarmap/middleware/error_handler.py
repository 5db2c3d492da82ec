# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured JSON problem responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, List, Optional, Tuple
from opentelemetry import trace
import logging
import traceback

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def build_problem(error_type: str, title: str, status: int, detail: str,
                  instance: str, **extra: Any) -> Dict[str, Any]:
    """Build a problem body in the shape every error response shares."""
    problem = {
        "type": error_type,
        "title": title,
        "status": status,
        "detail": detail,
        "instance": instance
    }
    problem.update(extra)
    return problem


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with JSON problem formatting."""

    def __init__(self, app: Flask):
        self.app = app
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        @self.app.errorhandler(404)
        def handle_not_found(error):
            return self.handle_not_found_view(error)

        @self.app.errorhandler(400)
        def handle_bad_request(error):
            return self.handle_client_error(error, "bad-request", "Bad Request")

        @self.app.errorhandler(405)
        def handle_method_not_allowed(error):
            return self.handle_client_error(error, "method-not-allowed", "Method Not Allowed")

        @self.app.errorhandler(500)
        def handle_internal_server_error(error):
            return self.handle_unexpected_error(error)

        # Handle generic exceptions
        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            if isinstance(error, HTTPException):
                return self.handle_client_error(error, "http-error", error.name)
            return self.handle_unexpected_error(error)

    def handle_not_found_view(self, error: HTTPException):
        """
        Render the not-found view for unmatched paths.

        The view carries the localized title and message so the shell can
        render it without another lookup.
        """
        localization = getattr(self.app, "localization_service", None)
        title = "not_found.title"
        message = "not_found.message"
        if localization is not None:
            title = localization.resolve(title)
            message = localization.resolve(message, {"path": request.path})

        logger.info("Unmatched path", extra={"path": request.path, "method": request.method})

        return jsonify({
            "view": "not_found",
            "path": request.path,
            "title": title,
            "message": message
        }), 404

    def handle_client_error(
        self,
        error: HTTPException,
        error_type: str,
        title: str
    ) -> Tuple[Any, int]:
        """
        Handle client errors (4xx status codes).

        Args:
            error: HTTP exception
            error_type: Error type identifier
            title: Error title

        Returns:
            Tuple of (error response, status code)
        """
        with tracer.start_as_current_span("error_handler.client_error") as span:
            span.set_attributes({
                "error.type": error_type,
                "error.status": error.code,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else title

            logger.warning(
                f"Client error: {title}",
                extra={
                    "error_type": error_type,
                    "status_code": error.code,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method
                }
            )

            return jsonify(build_problem(error_type, title, error.code, detail, request.path)), error.code

    def handle_unexpected_error(self, error: Exception) -> Tuple[Any, int]:
        """
        Handle unexpected exceptions not caught by specific handlers.

        Args:
            error: Unexpected exception

        Returns:
            Tuple of (error response, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })

            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method,
                    "traceback": traceback.format_exc()
                },
                exc_info=True
            )

            # Don't expose internal error details
            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            problem = build_problem("internal-server-error", "Internal Server Error", 500, detail, request.path)
            return jsonify(problem), 500


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error",
                 message_key: str = "common.error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.message_key = message_key


class ValidationException(CustomException):
    """Exception for validation errors."""

    def __init__(self, message: str, validation_errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthorizationException(CustomException):
    """Exception for authorization errors."""

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    def __init__(self, message: str, message_key: str = "common.error"):
        super().__init__(message, 404, "resource-not-found", message_key)


class ConflictException(CustomException):
    """Exception for operations refused in the current state."""

    def __init__(self, message: str, message_key: str = "common.error"):
        super().__init__(message, 409, "resource-conflict", message_key)


class StorageException(CustomException):
    """Exception for local storage that could not be written."""

    def __init__(self, message: str):
        super().__init__(message, 503, "storage-unavailable")


def register_custom_error_handlers(app: Flask):
    """
    Register handlers for custom exceptions.

    Args:
        app: Flask application
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            localization = getattr(app, "localization_service", None)
            message = localization.resolve(error.message_key) if localization else error.message_key

            extra: Dict[str, Any] = {"message": message}
            if isinstance(error, ValidationException):
                extra["errors"] = error.validation_errors

            problem = build_problem(
                error.error_type,
                error.error_type.replace("-", " ").capitalize(),
                error.status_code,
                error.message,
                request.path,
                **extra
            )
            return jsonify(problem), error.status_code

    # Storage failures raised from services are surfaced as inline messages
    from ..services.storage import StorageWriteError

    @app.errorhandler(StorageWriteError)
    def handle_storage_write_error(error: StorageWriteError):
        return handle_custom_exception(StorageException(str(error)))
