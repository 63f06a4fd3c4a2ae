# -*- coding: utf-8 -*-
"""Location: ./trustheaders/middleware/auth_context.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Authentication Context Middleware.

Binds the user authenticated upstream (``request.state.user``) as the current
authentication for the duration of the request, so the header provider can read
the principal name without access to the request. Requests without a user run
as the anonymous principal and are not enriched.

Examples:
    >>> from trustheaders.middleware.auth_context import AuthenticationContextMiddleware  # doctest: +SKIP
    >>> app.add_middleware(AuthenticationContextMiddleware)  # doctest: +SKIP
"""

# Standard
import logging
from typing import Any, Callable, Optional

# Third-Party
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# First-Party
from trustheaders.identity import ANONYMOUS, Authentication, reset_authentication, set_authentication

logger = logging.getLogger(__name__)


def principal_name(user: Any) -> Optional[str]:
    """Principal name of an upstream user object.

    Args:
        user: A string or an object with ``username``, ``email`` or ``name``.

    Returns:
        Optional[str]: The first non-empty candidate.

    Examples:
        >>> principal_name("alice")
        'alice'
        >>> class U:
        ...     username = None
        ...     email = "bob@x.org"
        >>> principal_name(U())
        'bob@x.org'
    """
    if isinstance(user, str):
        return user
    for attr in ("username", "email", "name"):
        value = getattr(user, attr, None)
        if isinstance(value, str) and value:
            return value
    return None


class AuthenticationContextMiddleware(BaseHTTPMiddleware):
    """Exposes the upstream authenticated user to the header provider."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Bind the request's authentication, then process the request.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            HTTP response
        """
        user = getattr(request.state, "user", None)
        if user is None:
            authentication = ANONYMOUS
        else:
            authentication = Authentication(name=principal_name(user))
            logger.debug(f"Bound authentication for {authentication.name}")

        token = set_authentication(authentication)
        try:
            return await call_next(request)
        finally:
            reset_authentication(token)
