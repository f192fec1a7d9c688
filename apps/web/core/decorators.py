"""
Decorators for request handling and access control.
"""

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from django.http import HttpRequest, JsonResponse

from apps.web.core.exceptions import ErrorKind, ServiceError
from apps.web.core.responses import error_response

logger = logging.getLogger(__name__)


def api_login_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that rejects anonymous API requests with a JSON 401.

    Django's login_required redirects to a login page, which API clients
    cannot follow.

    Usage:
        @api_login_required
        def create_order(request):
            ...
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        if not request.user.is_authenticated:
            return JsonResponse(
                {"error": "authentication_required", "message": "Login required"},
                status=401,
            )
        return view_func(request, *args, **kwargs)

    return wrapper


def admin_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that limits a view to restaurant admins.

    Anonymous requests get 401, signed-in customers get 403.
    """

    @wraps(view_func)
    @api_login_required
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        if not request.user.is_admin:  # type: ignore[union-attr]
            return JsonResponse(
                {
                    "error": ErrorKind.PERMISSION_DENIED.value,
                    "message": "Admin access required",
                },
                status=403,
            )
        return view_func(request, *args, **kwargs)

    return wrapper


def service_errors(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator that renders ServiceError subclasses as JSON error responses.

    The status code comes from the exception's ErrorKind.
    """

    @wraps(view_func)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> Any:
        try:
            return view_func(request, *args, **kwargs)
        except ServiceError as e:
            logger.info(
                "Request rejected: path=%s error=%s message=%s",
                request.path,
                e.kind.value,
                e.message,
            )
            return error_response(e)

    return wrapper
