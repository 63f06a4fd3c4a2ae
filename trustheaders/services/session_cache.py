# -*- coding: utf-8 -*-
"""Location: ./trustheaders/services/session_cache.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Session Header Cache.

Keeps the resolved headers of a user session per target service so repeated
requests do not hit the directory. A session holds one username slot shared by
all services and one header slot per service (plus one for "no service").
Cached headers are only returned while the stored username equals the current
principal name.

The whole read, compute, store sequence runs under the session lock: two
requests of the same session never resolve concurrently, whatever their target
service. Different sessions do not contend.
"""

# Standard
from dataclasses import dataclass, field
import logging
import threading
from typing import Callable, Dict, List, Optional

# First-Party
from trustheaders.identity import get_current_user_name
from trustheaders.models import Header

logger = logging.getLogger(__name__)

CACHED_HEADERS_KEY = "trust-headers-cached-attrs"


def service_cache_key(service_name: Optional[str]) -> str:
    """Slot key for a target service.

    Args:
        service_name: Target service, ``None`` for no service.

    Returns:
        str: The slot key.

    Examples:
        >>> service_cache_key(None)
        'trust-headers-cached-attrs'
        >>> service_cache_key("analytics")
        'trust-headers-cached-attrs@analytics'
    """
    return CACHED_HEADERS_KEY if service_name is None else f"{CACHED_HEADERS_KEY}@{service_name}"


@dataclass
class HeaderSession:
    """Per-session cache state.

    Attributes:
        username: Principal the cached headers were resolved for.
        headers: Resolved headers by slot key.
        lock: Serializes cache access for this session.
    """

    username: Optional[str] = None
    headers: Dict[str, List[Header]] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


class SessionHeaderCache:
    """Memoizes resolved headers per (session, service)."""

    def get_cached_headers(self, session: HeaderSession, service_name: Optional[str]) -> Optional[List[Header]]:
        """Cached headers valid for the current principal.

        Args:
            session: Session state.
            service_name: Target service.

        Returns:
            Optional[List[Header]]: A copy of the cached headers, ``None`` on miss.

        Raises:
            UnauthenticatedError: If no principal is bound.
        """
        username = get_current_user_name()
        with session.lock:
            cached = session.headers.get(service_cache_key(service_name))
            if cached is None or session.username != username:
                return None
            if not isinstance(cached, list) or not all(isinstance(h, Header) for h in cached):
                logger.info(f"Unable to lookup cached user's attributes for user: {username}, service: {service_name}")
                return None
            return list(cached)

    def set_cached_headers(self, session: HeaderSession, headers: List[Header], service_name: Optional[str]) -> None:
        """Store headers resolved for the current principal.

        Entries cached for another principal are dropped first, since the
        username slot is shared by every service slot.

        Args:
            session: Session state.
            headers: Resolved headers.
            service_name: Target service.

        Raises:
            UnauthenticatedError: If no principal is bound.
        """
        username = get_current_user_name()
        logger.debug(f"Storing attributes into session for user: {username}, service: {service_name}")
        with session.lock:
            if session.username != username:
                session.headers.clear()
                session.username = username
            session.headers[service_cache_key(service_name)] = list(headers)

    def get_or_compute(self, session: HeaderSession, service_name: Optional[str], compute: Callable[[], List[Header]]) -> List[Header]:
        """Cached headers, or freshly computed and cached ones.

        Args:
            session: Session state.
            service_name: Target service.
            compute: Resolves the headers on a miss.

        Returns:
            List[Header]: Headers for the current principal and service.

        Raises:
            UnauthenticatedError: If no principal is bound.

        Examples:
            >>> from trustheaders.identity import authenticated
            >>> cache, session = SessionHeaderCache(), HeaderSession()
            >>> with authenticated("alice"):
            ...     cache.get_or_compute(session, "s", lambda: [Header(name="sec-org", value="a")])
            ...     cache.get_or_compute(session, "s", lambda: [])
            [Header(name='sec-org', value='a')]
            [Header(name='sec-org', value='a')]
        """
        with session.lock:
            cached = self.get_cached_headers(session, service_name)
            if cached is not None:
                return cached
            headers = compute()
            self.set_cached_headers(session, headers, service_name)
            return headers
