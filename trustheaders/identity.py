# -*- coding: utf-8 -*-
"""Location: ./trustheaders/identity.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Identity lookup and enrichment bypass gate.

The authentication of the request being processed is held in a context
variable, so each request thread (or task) sees its own principal. It is bound
by :class:`~trustheaders.middleware.auth_context.AuthenticationContextMiddleware`
or explicitly with :func:`authenticated`.

Examples:
    >>> with authenticated("alice"):
    ...     get_current_user_name()
    'alice'
    >>> with authenticated(ANONYMOUS):
    ...     is_anonymous()
    True
"""

# Standard
from contextlib import contextmanager
from contextvars import ContextVar, Token
import logging
from typing import Any, Iterator, Mapping, Optional, Union

# Third-Party
from pydantic import BaseModel, ConfigDict

# First-Party
from trustheaders.config import settings

logger = logging.getLogger(__name__)


class UnauthenticatedError(RuntimeError):
    """Raised when enrichment runs without an authenticated principal."""


class Authentication(BaseModel):
    """Authentication of the current request.

    Attributes:
        name: Principal name, the LDAP user identifier.
        anonymous: Whether this is the anonymous principal.
    """

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    anonymous: bool = False


ANONYMOUS = Authentication(name="anonymousUser", anonymous=True)

current_authentication: ContextVar[Optional[Authentication]] = ContextVar("current_authentication", default=None)


def set_authentication(authentication: Union[Authentication, str, None]) -> Token:
    """Bind the authentication for the current context.

    Args:
        authentication: Authentication, principal name, or ``None`` to clear.

    Returns:
        Token: Token to pass to :func:`reset_authentication`.
    """
    if isinstance(authentication, str):
        authentication = Authentication(name=authentication)
    return current_authentication.set(authentication)


def reset_authentication(token: Token) -> None:
    """Restore the authentication bound before :func:`set_authentication`.

    Args:
        token: Token returned by :func:`set_authentication`.
    """
    current_authentication.reset(token)


@contextmanager
def authenticated(authentication: Union[Authentication, str, None]) -> Iterator[None]:
    """Bind an authentication for the duration of a block.

    Args:
        authentication: Authentication or principal name.

    Yields:
        None
    """
    token = set_authentication(authentication)
    try:
        yield
    finally:
        reset_authentication(token)


def get_authentication() -> Optional[Authentication]:
    """Authentication bound to the current context.

    Returns:
        Optional[Authentication]: The authentication, ``None`` when nothing is bound.
    """
    return current_authentication.get()


def is_anonymous() -> bool:
    """Whether the current principal is the anonymous principal.

    Returns:
        bool: ``True`` for anonymous requests.

    Examples:
        >>> with authenticated("bob"):
        ...     is_anonymous()
        False
    """
    authentication = get_authentication()
    return authentication is not None and authentication.anonymous


def get_current_user_name() -> str:
    """Name of the authenticated principal.

    Returns:
        str: The principal name.

    Raises:
        UnauthenticatedError: If no authentication is bound or it has no name.

    Examples:
        >>> with authenticated(None):
        ...     get_current_user_name()
        Traceback (most recent call last):
        ...
        trustheaders.identity.UnauthenticatedError: Request is not authenticated
    """
    authentication = get_authentication()
    if authentication is None or not authentication.name:
        raise UnauthenticatedError("Request is not authenticated")
    return authentication.name


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup on any mapping.

    Args:
        headers: Request headers.
        name: Header name.

    Returns:
        Optional[str]: Header value, ``None`` when absent.
    """
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name.lower():
            return candidate
    return None


def is_pre_authorized(request: Any, header_name: Optional[str] = None) -> bool:
    """Whether trust headers were already asserted upstream for this request.

    Args:
        request: Incoming request, anything exposing a ``headers`` mapping.
        header_name: Marker header name, defaults to ``settings.pre_authenticated_header``.

    Returns:
        bool: ``True`` when the marker header is ``true`` (case-insensitive).

    Examples:
        >>> class R:
        ...     headers = {"Sec-Preauthenticated": "TRUE"}
        >>> is_pre_authorized(R())
        True
    """
    headers = getattr(request, "headers", None) or {}
    value = _header(headers, header_name or settings.pre_authenticated_header)
    return value is not None and value.strip().lower() == "true"


def should_enrich(request: Any, header_name: Optional[str] = None) -> bool:
    """Whether LDAP headers must be added to this request.

    Args:
        request: Incoming request.
        header_name: Pre-authorized marker header name, defaults to ``settings.pre_authenticated_header``.

    Returns:
        bool: ``False`` for pre-authorized or anonymous requests.
    """
    if is_pre_authorized(request, header_name):
        logger.debug("Skipping header enrichment for pre-authorized request")
        return False
    if is_anonymous():
        logger.debug("Skipping header enrichment for anonymous request")
        return False
    return True
