# SPDX-License-Identifier: Apache-2.0

"""
Session gating for views.

Views that need a signed-in user are wrapped with ``require_session``. A
refused request is redirected without an error message: unauthenticated
clients go to the sign-in view, signed-in users without the required role go
home.
"""

from functools import wraps
from flask import request, redirect, g
from typing import Callable, Optional, Sequence
from opentelemetry import trace
import logging

from ..domain.visibility import check_route_access
from ..utils.context import get_app_state

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


def require_session(roles: Optional[Sequence[str]] = None) -> Callable:
    """
    Decorator to require a session, and optionally one of the given roles.

    The signed-in user is stored in ``g.current_user``.

    Args:
        roles: Roles allowed to open the view, any role if omitted

    Returns:
        Decorator function
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            with tracer.start_as_current_span("auth.middleware.require_session") as span:
                user = get_app_state().session.current_user()
                decision = check_route_access(user, roles)

                if not decision.allowed:
                    span.set_attributes({
                        "auth.result": "redirect",
                        "auth.redirect_to": decision.redirect_to
                    })
                    logger.info(
                        "Navigation refused, redirecting",
                        extra={
                            "path": request.path,
                            "user_id": user.user_id if user else None,
                            "redirect_to": decision.redirect_to
                        }
                    )
                    return redirect(decision.redirect_to)

                g.current_user = user
                span.set_attributes({
                    "auth.result": "success",
                    "user.id": user.user_id,
                    "user.role": user.role
                })

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def get_current_user():
    """Signed-in user of the current request, set by ``require_session``."""
    return getattr(g, "current_user", None)
