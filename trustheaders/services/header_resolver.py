# -*- coding: utf-8 -*-
"""Location: ./trustheaders/services/header_resolver.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Header Resolution Service.

Computes the trust headers for one user and target service:

- ``sec-org`` and ``sec-orgname`` from the user's organization membership;
- one header per entry of the effective mapping for the service, valued from
  the user's LDAP attributes.

Directory failures never escape :meth:`HeaderResolver.resolve`; they degrade
to a partial or empty header list.
"""

# Standard
import logging
from typing import List, Mapping, Optional

# Third-Party
from ldap3.utils.dn import escape_rdn

# First-Party
from trustheaders.codec import encode_base64, split_attribute_spec
from trustheaders.directory import AttributeBag, AttributeValue, DirectoryError, DirectoryGateway, EntryNotFoundError, OrganizationMatcher
from trustheaders.models import Header, HeaderMappings

logger = logging.getLogger(__name__)


def get_attribute(attributes: AttributeBag, name: str) -> Optional[List[AttributeValue]]:
    """Look up an attribute by name, LDAP attribute names being case-insensitive.

    Args:
        attributes: Entry attributes.
        name: Attribute name.

    Returns:
        Optional[List[AttributeValue]]: The values, ``None`` when absent.

    Examples:
        >>> get_attribute({"givenName": ["Alice"]}, "givenname")
        ['Alice']
        >>> get_attribute({}, "mail") is None
        True
    """
    if name in attributes:
        return attributes[name]
    lowered = name.lower()
    for key, values in attributes.items():
        if key.lower() == lowered:
            return values
    return None


def build_value(attributes: AttributeBag, spec: str) -> Optional[str]:
    """Header value for one attribute spec.

    Args:
        attributes: Entry attributes.
        spec: Attribute name, optionally prefixed with ``base64:``.

    Returns:
        Optional[str]: Comma-joined values, ``None`` when the attribute is absent.

    Raises:
        UnicodeDecodeError: If a binary value is mapped without the encoding prefix.

    Examples:
        >>> build_value({"mail": ["a", "b"]}, "mail")
        'a,b'
        >>> build_value({"mail": ["a", "b"]}, "base64:mail")
        '{base64}YQ==,{base64}Yg=='
        >>> build_value({"mail": ["a", None]}, "mail")
        'a'
        >>> build_value({}, "mail") is None
        True
    """
    name, encode = split_attribute_spec(spec)
    values = get_attribute(attributes, name)
    if values is None:
        return None
    rendered = []
    for value in values:
        if value is None:
            continue
        if encode:
            rendered.append(encode_base64(value))
        elif isinstance(value, bytes):
            rendered.append(value.decode("utf-8"))
        else:
            rendered.append(str(value))
    return ",".join(rendered)


class HeaderResolver:
    """Resolves the trust headers of a user for a target service.

    Examples:
        >>> from unittest.mock import MagicMock
        >>> directory = MagicMock()
        >>> directory.search_for_user.side_effect = lambda user, attributes=None: {"mail": ["alice@x.org"]}
        >>> resolver = HeaderResolver(directory, HeaderMappings(default={"sec-email": "mail"}), "ou=orgs")
        >>> resolver.resolve("alice")
        [Header(name='sec-email', value='alice@x.org')]
    """

    def __init__(
        self,
        directory: DirectoryGateway,
        mappings: HeaderMappings,
        org_base_dn: str,
        org_header: str = "sec-org",
        org_name_header: str = "sec-orgname",
        member_of_attribute: str = "memberOf",
        org_name_attribute: str = "o",
    ):
        """Initialize the resolver.

        Args:
            directory: Directory gateway.
            mappings: Header mappings snapshot.
            org_base_dn: Base DN of organization entries, e.g. ``ou=orgs``.
            org_header: Header carrying the organization identifier.
            org_name_header: Header carrying the organization display name.
            member_of_attribute: Membership attribute of user entries.
            org_name_attribute: Display name attribute of organization entries.
        """
        self.directory = directory
        self.mappings = mappings
        self.org_base_dn = org_base_dn
        self.org_header = org_header
        self.org_name_header = org_name_header
        self.member_of_attribute = member_of_attribute
        self.org_name_attribute = org_name_attribute
        self.org_matcher = OrganizationMatcher(org_base_dn)

    def resolve(self, username: str, service_name: Optional[str] = None) -> List[Header]:
        """Compute the ordered header list for a user and service.

        Args:
            username: Authenticated principal name.
            service_name: Target service, ``None`` for default mappings only.

        Returns:
            List[Header]: Organization headers then mapped headers, empty when the
            user entry cannot be read.
        """
        try:
            user_attributes = self.directory.search_for_user(username)
        except EntryNotFoundError:
            logger.error(f"Unable to lookup user: {username} not found")
            return []
        except DirectoryError as e:
            logger.error(f"Unable to lookup user: {username}: {e}")
            return []

        headers = self.organization_headers(username)
        headers.extend(self.collect_header_mappings(user_attributes, self.mappings.for_service(service_name)))
        return headers

    def load_org_cn(self, username: str) -> Optional[str]:
        """Organization identifier of a user.

        Only the membership attribute is requested. When several values match, the
        first one in directory order wins.

        Args:
            username: User identifier.

        Returns:
            Optional[str]: The identifier, ``None`` when not found or on directory error.
        """
        try:
            org_data = self.directory.search_for_user(username, [self.member_of_attribute])
        except DirectoryError as e:
            logger.error(f"problem adding headers for request: organization: {e}")
            return None
        return self.org_matcher.first_match(get_attribute(org_data, self.member_of_attribute) or [])

    def organization_headers(self, username: str) -> List[Header]:
        """Organization identifier and display name headers.

        Args:
            username: User identifier.

        Returns:
            List[Header]: Empty without organization, identifier only when the
            organization entry cannot be read.
        """
        org_cn = self.load_org_cn(username)
        if org_cn is None:
            return []
        headers = [Header(name=self.org_header, value=org_cn)]
        dn = f"cn={escape_rdn(org_cn)},{self.org_base_dn}"
        try:
            org_entry = self.directory.lookup(dn)
        except DirectoryError as e:
            logger.warning(f"Cannot find associated org with cn {org_cn}: {e}")
            return headers
        org_name = (get_attribute(org_entry, self.org_name_attribute) or [None])[0]
        if isinstance(org_name, bytes):
            org_name = org_name.decode("utf-8", errors="replace")
        headers.append(Header(name=self.org_name_header, value=org_name))
        return headers

    def collect_header_mappings(self, attributes: AttributeBag, mappings: Mapping[str, str]) -> List[Header]:
        """Headers for every mapping entry, in mapping order.

        Args:
            attributes: User entry attributes.
            mappings: Effective header name to attribute spec mapping.

        Returns:
            List[Header]: One header per entry; absent attributes give ``None`` values.
        """
        headers = []
        for header_name, spec in mappings.items():
            try:
                headers.append(Header(name=header_name, value=build_value(attributes, spec)))
            except ValueError as e:
                logger.error(f"problem adding headers for request: {header_name}: {e}")
        return headers
