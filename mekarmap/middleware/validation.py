# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation middleware using Pydantic models.
Provides request body validation and error formatting.
"""

from functools import wraps
from flask import request, jsonify, current_app
from typing import Type, Callable, Dict, Any, List
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from .error_handler import build_problem

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class ValidationMiddleware:
    """Middleware for request validation using Pydantic models."""

    def format_validation_errors(self, validation_error: ValidationError) -> List[Dict[str, Any]]:
        """
        Format Pydantic validation errors for the response body.

        Args:
            validation_error: Pydantic ValidationError

        Returns:
            List of formatted error dictionaries
        """
        errors = []

        for error in validation_error.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field_path,
                "message": error["msg"],
                "type": error["type"],
                "input": error.get("input")
            })

        return errors

    def _validation_problem(self, detail: str, errors: List[Dict[str, Any]]):
        localization = getattr(current_app, "localization_service", None)
        message = localization.resolve("common.error") if localization else "common.error"
        problem = build_problem(
            "validation-error",
            "Validation error",
            400,
            detail,
            request.path,
            message=message,
            errors=errors
        )
        return jsonify(problem), 400

    def validate_json_body(self, model_class: Type[BaseModel]) -> Callable:
        """
        Decorator to validate the JSON request body against a Pydantic model.

        The validated model is passed to the view as its first argument.

        Args:
            model_class: Pydantic model class for validation

        Returns:
            Decorator function
        """
        def decorator(f: Callable) -> Callable:
            @wraps(f)
            def decorated_function(*args, **kwargs):
                with tracer.start_as_current_span("validation.validate_json_body") as span:
                    span.set_attributes({
                        "validation.model": model_class.__name__,
                        "http.method": request.method,
                        "http.path": request.path
                    })

                    if not request.is_json:
                        span.set_attribute("validation.result", "invalid_content_type")
                        return self._validation_problem(
                            "Request must have Content-Type: application/json",
                            [{
                                "field": "content-type",
                                "message": "Expected application/json",
                                "type": "content_type_error",
                                "input": request.content_type
                            }]
                        )

                    json_data = request.get_json(silent=True)
                    if not isinstance(json_data, dict):
                        span.set_attribute("validation.result", "invalid_json")
                        return self._validation_problem(
                            "Invalid JSON in request body",
                            [{
                                "field": "body",
                                "message": "Expected a JSON object",
                                "type": "json_error",
                                "input": None
                            }]
                        )

                    try:
                        validated_data = model_class.model_validate(json_data)
                    except ValidationError as e:
                        span.set_attribute("validation.result", "validation_error")
                        validation_errors = self.format_validation_errors(e)

                        logger.warning(
                            "Request validation failed",
                            extra={
                                "model": model_class.__name__,
                                "path": request.path,
                                "method": request.method,
                                "errors": validation_errors
                            }
                        )

                        return self._validation_problem(
                            f"Request validation failed for {model_class.__name__}",
                            validation_errors
                        )

                    span.set_attribute("validation.result", "success")
                    logger.debug(
                        "Request validation successful",
                        extra={
                            "model": model_class.__name__,
                            "path": request.path,
                            "method": request.method
                        }
                    )

                    return f(validated_data, *args, **kwargs)

            return decorated_function
        return decorator


validation_middleware = ValidationMiddleware()


def validate_json(model_class: Type[BaseModel]) -> Callable:
    """
    Convenience decorator for JSON body validation.

    Args:
        model_class: Pydantic model class

    Returns:
        Decorator function
    """
    return validation_middleware.validate_json_body(model_class)
