# -*- coding: utf-8 -*-
"""Location: ./trustheaders/services/header_provider.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

LDAP User Details Header Provider.

Entry point used by the proxy's outbound request builder. Adds the standard
``sec-org`` and ``sec-orgname`` headers and every header configured in
``headers-mapping.properties`` for the target service.

The final set of headers sent to a proxied service is the aggregation of the
default mappings and the mappings specific to that service, the latter taking
precedence. Service names match the ones the proxy assigns to its targets:
with ``analytics=http://analytics:8080/analytics/`` in the targets mapping,
``analytics.sec-firstname=givenName`` applies to that service only.

Examples:
    >>> from unittest.mock import MagicMock
    >>> from trustheaders.models import HeaderMappings
    >>> provider = LdapUserDetailsHeaderProvider(MagicMock(), HeaderMappings(), "ou=orgs")
    >>> from trustheaders.identity import ANONYMOUS, authenticated
    >>> with authenticated(ANONYMOUS):
    ...     provider.get_custom_headers(HeaderSession(), MagicMock(headers={}), "analytics")
    []
"""

# Standard
import logging
from typing import Any, List, Optional

# First-Party
from trustheaders.config import get_settings, Settings
from trustheaders.directory import DirectoryGateway, Ldap3DirectoryGateway
from trustheaders.identity import get_current_user_name, should_enrich
from trustheaders.mappings import load_header_mappings, log_header_mappings, read_properties
from trustheaders.models import Header, HeaderMappings
from trustheaders.services.header_resolver import HeaderResolver
from trustheaders.services.session_cache import HeaderSession, SessionHeaderCache

logger = logging.getLogger(__name__)


class LdapUserDetailsHeaderProvider:
    """Adds LDAP derived trust headers to proxied requests."""

    def __init__(self, directory: DirectoryGateway, mappings: HeaderMappings, org_base_dn: str, settings: Optional[Settings] = None):
        """Initialize the provider.

        Args:
            directory: Directory gateway.
            mappings: Header mappings snapshot.
            org_base_dn: Base DN of organization entries.
            settings: Settings supplying header and attribute names, defaults to the global settings.
        """
        cfg = settings or get_settings()
        self.mappings = mappings
        self.pre_authenticated_header = cfg.pre_authenticated_header
        self.resolver = HeaderResolver(
            directory,
            mappings,
            org_base_dn,
            org_header=cfg.org_header,
            org_name_header=cfg.org_name_header,
            member_of_attribute=cfg.ldap_member_of_attribute,
            org_name_attribute=cfg.ldap_org_name_attribute,
        )
        self.cache = SessionHeaderCache()

    def get_custom_headers(self, session: HeaderSession, request: Any, service_name: Optional[str] = None) -> List[Header]:
        """Headers to add to the request forwarded to ``service_name``.

        Args:
            session: State of the user session the request belongs to.
            request: Incoming request, used for the pre-authorization marker.
            service_name: Target service name.

        Returns:
            List[Header]: Ordered headers, empty for pre-authorized or anonymous requests.

        Raises:
            UnauthenticatedError: If enrichment applies but no principal is bound.
        """
        if not should_enrich(request, self.pre_authenticated_header):
            return []
        return self.cache.get_or_compute(session, service_name, lambda: self.collect_headers(service_name))

    def collect_headers(self, service_name: Optional[str]) -> List[Header]:
        """Resolve headers for the current principal, bypassing the cache.

        Args:
            service_name: Target service name.

        Returns:
            List[Header]: Resolved headers.

        Raises:
            UnauthenticatedError: If no principal is bound.
        """
        return self.resolver.resolve(get_current_user_name(), service_name)


def load_configured_mappings(settings: Settings) -> HeaderMappings:
    """Mappings from the configured properties file.

    Args:
        settings: Settings naming the mappings file.

    Returns:
        HeaderMappings: Loaded mappings, empty when no file is configured.

    Raises:
        FileNotFoundError: If the configured file does not exist.
    """
    if settings.headers_mapping_file is None:
        logger.info("No header mappings file configured, only standard headers will be contributed")
        return HeaderMappings()
    mappings = load_header_mappings(read_properties(settings.headers_mapping_file))
    log_header_mappings(mappings)
    return mappings


def create_directory_gateway(settings: Settings) -> Ldap3DirectoryGateway:
    """Build the LDAP gateway from settings.

    Args:
        settings: Settings.

    Returns:
        Ldap3DirectoryGateway: The gateway.
    """
    return Ldap3DirectoryGateway(
        server_uri=settings.ldap_url,
        base_dn=settings.ldap_base_dn,
        users_search_base=settings.users_search_base,
        user_search_filter=settings.ldap_user_search_filter,
        bind_dn=settings.ldap_bind_dn,
        bind_password=settings.ldap_bind_password.get_secret_value() if settings.ldap_bind_password else None,
        connect_timeout=settings.ldap_connect_timeout,
        receive_timeout=settings.ldap_receive_timeout,
    )


def create_header_provider(settings: Optional[Settings] = None, directory: Optional[DirectoryGateway] = None) -> LdapUserDetailsHeaderProvider:
    """Build a provider from settings, loading the mappings once.

    Args:
        settings: Settings, defaults to the global settings.
        directory: Gateway to use instead of the LDAP one built from settings.

    Returns:
        LdapUserDetailsHeaderProvider: The provider.
    """
    cfg = settings or get_settings()
    logger.info(f"Will contribute standard header {cfg.org_header}")
    logger.info(f"Will contribute standard header {cfg.org_name_header}")
    mappings = load_configured_mappings(cfg)
    return LdapUserDetailsHeaderProvider(directory or create_directory_gateway(cfg), mappings, cfg.ldap_orgs_rdn, settings=cfg)
