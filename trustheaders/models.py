# -*- coding: utf-8 -*-
"""Location: ./trustheaders/models.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Trust Headers Models.
Pydantic models shared by the mapping loader, the resolver and the session cache.

Examples:
    >>> Header(name="sec-email", value="alice@x.org")
    Header(name='sec-email', value='alice@x.org')
    >>> m = HeaderMappings(default={"sec-email": "mail"}, per_service={"analytics": {"sec-firstname": "givenName"}})
    >>> m.for_service("analytics")
    {'sec-email': 'mail', 'sec-firstname': 'givenName'}
    >>> m.for_service("unknown")
    {'sec-email': 'mail'}
"""

# Standard
from typing import Dict, List, Optional

# Third-Party
from pydantic import BaseModel, ConfigDict, Field


class Header(BaseModel):
    """A single outbound request header.

    Attributes:
        name: Header name, passed through verbatim from the mapping.
        value: Header value, ``None`` when the mapped attribute is absent.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    value: Optional[str] = None


class HeaderMappings(BaseModel):
    """Immutable snapshot of the header to LDAP attribute mappings.

    Attributes:
        default: Mappings applied to every service, e.g. ``{"sec-email": "mail"}``.
        per_service: Mappings by target service name, overriding ``default``.
    """

    model_config = ConfigDict(frozen=True)

    default: Dict[str, str] = Field(default_factory=dict)
    per_service: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    def for_service(self, service_name: Optional[str]) -> Dict[str, str]:
        """Effective mapping for a target service.

        Service entries win on header name collision; default-only entries remain.
        Iteration order is the default mapping order followed by service-only headers.

        Args:
            service_name: Target service name, or ``None`` for no service.

        Returns:
            Dict[str, str]: A fresh header name to attribute spec mapping.

        Examples:
            >>> m = HeaderMappings(default={"a": "1", "b": "2"}, per_service={"s": {"b": "3"}})
            >>> m.for_service("s")
            {'a': '1', 'b': '3'}
            >>> m.for_service(None)
            {'a': '1', 'b': '2'}
        """
        mappings = dict(self.default)
        if service_name is not None:
            mappings.update(self.per_service.get(service_name, {}))
        return mappings

    def services(self) -> List[str]:
        """Names of the services having specific mappings.

        Returns:
            List[str]: Sorted service names.
        """
        return sorted(self.per_service)
