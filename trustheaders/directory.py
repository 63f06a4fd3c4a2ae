# -*- coding: utf-8 -*-
"""Location: ./trustheaders/directory.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Directory Search Gateway.

Defines the contract the header resolver consumes (search a user by identifier,
look up an entry by DN, both returning an attribute bag) and an ``ldap3``
implementation of it. Also holds the organization membership matcher that
extracts an organization identifier from ``memberOf`` DNs.

Examples:
    >>> matcher = OrganizationMatcher("ou=orgs,dc=x")
    >>> matcher.match("cn=geoteam,ou=orgs,dc=x")
    'geoteam'
    >>> matcher.match("cn=admins,ou=roles,dc=x") is None
    True
"""

# Standard
import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Union

# Third-Party
from ldap3 import ALL_ATTRIBUTES, BASE, Connection, NONE, Server, SUBTREE
from ldap3.core.exceptions import LDAPException, LDAPInvalidDnError
from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import parse_dn

logger = logging.getLogger(__name__)

AttributeValue = Union[str, bytes]
AttributeBag = Dict[str, List[AttributeValue]]

# LDAP result code for a missing base object
NO_SUCH_OBJECT = 32

# RFC 4514 escapes: backslash followed by two hex digits or one special character
_DN_ESCAPE = re.compile(rb"\\([0-9a-fA-F]{2}|.)", re.DOTALL)


class DirectoryError(Exception):
    """Raised when the directory cannot answer a search or lookup."""


class EntryNotFoundError(DirectoryError):
    """Raised when the searched user or looked up entry does not exist."""


class DirectoryGateway(Protocol):
    """Contract for directory access consumed by the header resolver."""

    def search_for_user(self, username: str, attributes: Optional[Sequence[str]] = None) -> AttributeBag:
        """Return the attributes of the entry identified by ``username``.

        Args:
            username: User identifier substituted into the search filter.
            attributes: Attributes to return, ``None`` for all user attributes.
        """
        ...  # pragma: no cover

    def lookup(self, dn: str) -> AttributeBag:
        """Return the attributes of the entry at ``dn``.

        Args:
            dn: Distinguished name, absolute or relative to the base DN.
        """
        ...  # pragma: no cover


def _rdn_key(rdns: Iterable[tuple]) -> List[tuple[str, str]]:
    """Comparable form of parsed DN components, attribute types are case-insensitive.

    Args:
        rdns: Components as returned by ``parse_dn``.

    Returns:
        List[tuple[str, str]]: ``(type, value)`` pairs.
    """
    return [(attr.lower(), unescape_dn_value(value)) for attr, value, _ in rdns]


def unescape_dn_value(value: str) -> str:
    """Remove RFC 4514 escaping from an attribute value as returned by ``parse_dn``.

    Args:
        value: Escaped value.

    Returns:
        str: The plain value.

    Examples:
        >>> unescape_dn_value("Acme\\\\, Inc")
        'Acme, Inc'
        >>> unescape_dn_value("caf\\\\C3\\\\A9")
        'café'
        >>> unescape_dn_value("geoteam")
        'geoteam'
    """
    if "\\" not in value:
        return value
    raw = _DN_ESCAPE.sub(lambda m: bytes.fromhex(m.group(1).decode("ascii")) if len(m.group(1)) == 2 else m.group(1), value.encode("utf-8"))
    return raw.decode("utf-8", errors="replace")


class OrganizationMatcher:
    """Extracts the organization identifier from membership DNs.

    A value matches when its components after the leading RDN start with the
    organization base DN components: ``cn=<id>,<org base dn>[,...]``. The value
    of the leading RDN is the organization identifier.
    """

    def __init__(self, org_base_dn: str):
        """Build a matcher for one organization subtree.

        Args:
            org_base_dn: Organization base, e.g. ``ou=orgs`` or ``ou=orgs,dc=x``.
        """
        self.org_base_dn = org_base_dn
        self._base = _rdn_key(parse_dn(org_base_dn, strip=True)) if org_base_dn else []

    def match(self, member_of: AttributeValue) -> Optional[str]:
        """Organization identifier for one membership value.

        Args:
            member_of: One ``memberOf`` value.

        Returns:
            Optional[str]: The identifier, or ``None`` when the value is not an organization.

        Examples:
            >>> OrganizationMatcher("ou=orgs").match("cn=psc,ou=orgs,dc=georchestra,dc=org")
            'psc'
            >>> OrganizationMatcher("ou=orgs").match("not a dn") is None
            True
        """
        if not isinstance(member_of, str):
            return None
        try:
            rdns = parse_dn(member_of, strip=True)
        except LDAPInvalidDnError:
            return None
        if len(rdns) <= len(self._base):
            return None
        if _rdn_key(rdns[1 : 1 + len(self._base)]) != self._base:
            return None
        return unescape_dn_value(rdns[0][1])

    def first_match(self, values: Iterable[AttributeValue]) -> Optional[str]:
        """First organization identifier in the given order.

        The directory does not guarantee any order for multi-valued attributes, so
        when a user belongs to several organizations the one returned depends on the
        directory implementation.

        Args:
            values: ``memberOf`` values in gateway order.

        Returns:
            Optional[str]: The first identifier found, if any.

        Examples:
            >>> OrganizationMatcher("ou=orgs").first_match(["cn=r,ou=roles", "cn=a,ou=orgs", "cn=b,ou=orgs"])
            'a'
        """
        for value in values:
            org_id = self.match(value)
            if org_id is not None:
                return org_id
        return None


def _decode_value(value: bytes) -> AttributeValue:
    """Decode a raw attribute value as UTF-8, keeping undecodable values as bytes.

    Args:
        value: Raw value from the server.

    Returns:
        AttributeValue: Text when decodable, the original bytes otherwise.

    Examples:
        >>> _decode_value(b"alice")
        'alice'
        >>> _decode_value(b"\\xff\\xd8")
        b'\\xff\\xd8'
    """
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value


class Ldap3DirectoryGateway:
    """Directory gateway backed by ``ldap3``.

    A new connection is opened for every call; the server handles connection
    lifecycle and timeouts are set on the server and connection objects.
    """

    def __init__(
        self,
        server_uri: str,
        base_dn: str,
        users_search_base: str,
        user_search_filter: str = "(uid={0})",
        bind_dn: Optional[str] = None,
        bind_password: Optional[str] = None,
        connect_timeout: int = 5,
        receive_timeout: int = 15,
        connection_factory: Optional[Callable[[], Connection]] = None,
    ):
        """Initialize the gateway.

        Args:
            server_uri: LDAP URL, e.g. ``ldap://ldap:389``.
            base_dn: Directory base DN used to resolve relative DNs.
            users_search_base: Absolute DN under which users are searched.
            user_search_filter: Filter with a ``{0}`` placeholder for the username.
            bind_dn: Service account DN, anonymous bind when ``None``.
            bind_password: Service account password.
            connect_timeout: Connection timeout in seconds.
            receive_timeout: Response timeout in seconds.
            connection_factory: Optional callable returning a bound connection.
        """
        self.server_uri = server_uri
        self.base_dn = base_dn
        self.users_search_base = users_search_base
        self.user_search_filter = user_search_filter
        self.bind_dn = bind_dn
        self.bind_password = bind_password
        self.connect_timeout = connect_timeout
        self.receive_timeout = receive_timeout
        self._connection_factory = connection_factory or self._connect

    def _connect(self) -> Connection:
        """Open and bind a read-only connection.

        Returns:
            Connection: A bound connection.
        """
        server = Server(self.server_uri, connect_timeout=self.connect_timeout, get_info=NONE)
        return Connection(server, user=self.bind_dn, password=self.bind_password, auto_bind=True, read_only=True, receive_timeout=self.receive_timeout)

    def absolute_dn(self, dn: str) -> str:
        """Resolve a DN relative to the base DN.

        Args:
            dn: Absolute or relative DN.

        Returns:
            str: The absolute DN.

        Examples:
            >>> gw = Ldap3DirectoryGateway("ldap://x", "dc=x", "ou=users,dc=x")
            >>> gw.absolute_dn("cn=geoteam,ou=orgs")
            'cn=geoteam,ou=orgs,dc=x'
            >>> gw.absolute_dn("cn=geoteam,ou=orgs,dc=x")
            'cn=geoteam,ou=orgs,dc=x'
        """
        if not self.base_dn or dn.lower().endswith(self.base_dn.lower()):
            return dn
        return f"{dn},{self.base_dn}"

    def _search(self, search_base: str, search_filter: str, scope: str, attributes: Union[str, Sequence[str]]) -> List[AttributeBag]:
        """Run one search on a fresh connection.

        Args:
            search_base: Search base DN.
            search_filter: LDAP filter.
            scope: ``ldap3`` search scope.
            attributes: Attributes to return.

        Returns:
            List[AttributeBag]: One attribute bag per returned entry.

        Raises:
            EntryNotFoundError: If the search base does not exist.
            DirectoryError: If the connection or the search fails.
        """
        try:
            conn = self._connection_factory()
        except LDAPException as e:
            raise DirectoryError(f"Cannot connect to {self.server_uri}: {e}") from e
        try:
            found = conn.search(search_base=search_base, search_filter=search_filter, search_scope=scope, attributes=attributes)
            if not found:
                result = conn.result or {}
                if result.get("result") == NO_SUCH_OBJECT:
                    raise EntryNotFoundError(f"No such entry: {search_base}")
                if result.get("result", 0) != 0:
                    raise DirectoryError(f"Search under {search_base} failed: {result.get('description')} {result.get('message', '')}".strip())
                return []
            entries = [e for e in conn.response or [] if e.get("type") == "searchResEntry"]
            return [{name: [_decode_value(v) for v in values] for name, values in entry.get("raw_attributes", {}).items()} for entry in entries]
        except LDAPException as e:
            raise DirectoryError(f"Search under {search_base} failed: {e}") from e
        finally:
            try:
                conn.unbind()
            except LDAPException as close_error:
                logger.debug(f"Failed to unbind LDAP connection: {close_error}")

    def search_for_user(self, username: str, attributes: Optional[Sequence[str]] = None) -> AttributeBag:
        """Search the single user entry matching ``username``.

        Args:
            username: User identifier, escaped before substitution.
            attributes: Attributes to return, all user attributes when ``None``.

        Returns:
            AttributeBag: The user's attributes.

        Raises:
            EntryNotFoundError: If no entry matches.
            DirectoryError: If more than one entry matches or the search fails.
        """
        search_filter = self.user_search_filter.replace("{0}", escape_filter_chars(username))
        entries = self._search(self.users_search_base, search_filter, SUBTREE, list(attributes) if attributes else ALL_ATTRIBUTES)
        if not entries:
            raise EntryNotFoundError(f"User not found: {username}")
        if len(entries) > 1:
            raise DirectoryError(f"Expected one entry for user {username}, found {len(entries)}")
        return entries[0]

    def lookup(self, dn: str) -> AttributeBag:
        """Read the entry at ``dn``.

        Args:
            dn: Absolute DN or DN relative to the base DN.

        Returns:
            AttributeBag: The entry's attributes.

        Raises:
            EntryNotFoundError: If the entry does not exist.
            DirectoryError: If the lookup fails.
        """
        absolute = self.absolute_dn(dn)
        entries = self._search(absolute, "(objectClass=*)", BASE, ALL_ATTRIBUTES)
        if not entries:
            raise EntryNotFoundError(f"No such entry: {absolute}")
        return entries[0]
