"""
JSON response helpers shared by the API views.
"""

import json
from typing import Any, TypeVar

from django.http import HttpRequest, JsonResponse

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from apps.web.core.exceptions import ServiceError, ValidationError

_Schema = TypeVar("_Schema", bound=BaseModel)


def json_response(data: dict[str, Any], status: int = 200) -> JsonResponse:
    """Create a JSON response."""
    return JsonResponse(data, status=status)


def schema_response(schema: BaseModel, status: int = 200) -> JsonResponse:
    """Serialize a pydantic response model."""
    return json_response(schema.model_dump(mode="json"), status=status)


def error_response(exc: ServiceError) -> JsonResponse:
    """Render a service exception using its error kind."""
    body: dict[str, Any] = {"error": exc.kind.value, "message": exc.message}
    if exc.details:
        body["details"] = {k: str(v) for k, v in exc.details.items() if v is not None}
    return json_response(body, status=exc.status_code)


def parse_body(request: HttpRequest, schema: type[_Schema]) -> _Schema:
    """
    Parse and validate a JSON request body.

    Raises:
        ValidationError: If the body is not JSON or fails schema validation.
    """
    try:
        body = json.loads(request.body or b"{}")
    except json.JSONDecodeError as e:
        raise ValidationError("Invalid JSON in request body") from e

    try:
        return schema.model_validate(body)
    except PydanticValidationError as e:
        fields = {
            ".".join(str(loc) for loc in err["loc"]): err["msg"] for err in e.errors()
        }
        raise ValidationError("Request validation failed", **fields) from e


__all__ = [
    "error_response",
    "json_response",
    "parse_body",
    "schema_response",
]
