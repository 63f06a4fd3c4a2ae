# -*- coding: utf-8 -*-
"""Location: ./trustheaders/mappings.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Header mapping configuration.

Loads ``headers-mapping.properties`` style configuration into a
:class:`~trustheaders.models.HeaderMappings` snapshot. Keys without a ``.`` are
default mappings (``sec-email=mail``); ``<service>.<header>`` keys apply to one
target service only (``analytics.sec-firstname=givenName``).

No validation is applied to header or attribute names: a malformed entry simply
resolves to an attribute that is never found.
"""

# Standard
import logging
from pathlib import Path
import re
from typing import Dict, Mapping, Union

# First-Party
from trustheaders.models import HeaderMappings

logger = logging.getLogger(__name__)

# Separators ending a key when not escaped
_KEY_TERMINATORS = "=: \t\f"
_WHITESPACE = " \t\f"
_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)
_ESCAPED_CHARS = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def _unescape(text: str) -> str:
    """Resolve properties escapes: ``\\uXXXX``, ``\\t``, ``\\n``, ``\\r``, ``\\f`` and escaped literals.

    Args:
        text: Raw key or value.

    Returns:
        str: The unescaped text.

    Examples:
        >>> _unescape("caf\\\\u00e9")
        'café'
        >>> _unescape("a\\\\=b\\\\\\\\c")
        'a=b\\\\c'
    """
    if "\\" not in text:
        return text

    def replace(match: re.Match) -> str:
        token = match.group(1)
        if len(token) == 5:
            return chr(int(token[1:], 16))
        return _ESCAPED_CHARS.get(token, token)

    return _ESCAPE.sub(replace, text)


def _split_property(line: str) -> tuple[str, str]:
    """Split one logical properties line into key and value.

    The key ends at the first unescaped ``=``, ``:`` or whitespace.

    Args:
        line: Logical line, comments and continuations already handled.

    Returns:
        tuple[str, str]: Unescaped key and value, value is empty when no separator is present.

    Examples:
        >>> _split_property("sec-email = mail")
        ('sec-email', 'mail')
        >>> _split_property("analytics.sec-org:o")
        ('analytics.sec-org', 'o')
        >>> _split_property("lonely")
        ('lonely', '')
    """
    index = 0
    while index < len(line) and line[index] not in _KEY_TERMINATORS:
        index += 2 if line[index] == "\\" else 1
    key = line[:index]
    rest = line[index:].lstrip(_WHITESPACE)
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(_WHITESPACE)
    return _unescape(key), _unescape(rest)


def _continues(line: str) -> bool:
    """Whether a line ends with an unescaped backslash.

    Args:
        line: Physical line, surrounding whitespace removed.

    Returns:
        bool: ``True`` when the next line continues this one.

    Examples:
        >>> _continues("a,\\\\")
        True
        >>> _continues("c:\\\\\\\\")
        False
    """
    return (len(line) - len(line.rstrip("\\"))) % 2 == 1


def parse_properties(text: str) -> Dict[str, str]:
    """Parse Java-style properties text.

    Supports ``#`` and ``!`` comments, ``=``, ``:`` or whitespace separators,
    trailing backslash line continuations and backslash escapes in keys and
    values, including ``\\uXXXX``. Whitespace at both ends of a physical line is
    ignored. Later duplicate keys win.

    Args:
        text: Properties file contents.

    Returns:
        Dict[str, str]: Keys and values in file order.

    Examples:
        >>> parse_properties("# comment\\nsec-email=mail\\n\\nanalytics.sec-firstname = givenName\\n")
        {'sec-email': 'mail', 'analytics.sec-firstname': 'givenName'}
        >>> parse_properties("sec-roles=a,\\\\\\n    b")
        {'sec-roles': 'a,b'}
    """
    properties: Dict[str, str] = {}
    pending = ""
    for raw in text.splitlines():
        line = raw.strip()
        if not pending and (not line or line[0] in "#!"):
            continue
        if _continues(line):
            pending += line[:-1]
            continue
        line = pending + line
        pending = ""
        if line:
            key, value = _split_property(line)
            properties[key] = value
    if pending:
        key, value = _split_property(pending)
        properties[key] = value
    return properties


def read_properties(path: Union[str, Path]) -> Dict[str, str]:
    """Read a properties file.

    Args:
        path: Location of the properties file.

    Returns:
        Dict[str, str]: Parsed properties.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    logger.info(f"Loading header mappings from {path}")
    return parse_properties(path.read_text(encoding="utf-8"))


def load_header_mappings(properties: Mapping[str, str]) -> HeaderMappings:
    """Split flat properties into default and per-service mappings.

    The first ``.`` of a key separates the service name from the header name.
    Keys without ``.`` are default mappings. Keys starting with ``.`` belong to
    neither and are skipped.

    Args:
        properties: Flat key/value configuration.

    Returns:
        HeaderMappings: A new snapshot, independent of any previous one.

    Examples:
        >>> m = load_header_mappings({"sec-email": "mail", "analytics.sec-firstname": "givenName", "a.b.c": "x"})
        >>> m.default
        {'sec-email': 'mail'}
        >>> m.per_service
        {'analytics': {'sec-firstname': 'givenName'}, 'a': {'b.c': 'x'}}
        >>> load_header_mappings({".orphan": "x"}).per_service
        {}
    """
    default: Dict[str, str] = {}
    per_service: Dict[str, Dict[str, str]] = {}
    for key, value in properties.items():
        index = key.find(".")
        if index == -1:
            default[key] = value
        elif index > 0:
            per_service.setdefault(key[:index], {})[key[index + 1 :]] = value
        else:
            logger.debug(f"Ignoring header mapping with empty service name: {key}")
    return HeaderMappings(default=default, per_service=per_service)


def log_header_mappings(mappings: HeaderMappings) -> None:
    """Log every loaded mapping at info level.

    Args:
        mappings: Loaded mappings.
    """
    for header, attribute in mappings.default.items():
        logger.info(f"Loaded default header mapping {header}={attribute}")
    for service, service_mappings in mappings.per_service.items():
        for header, attribute in service_mappings.items():
            logger.info(f"Loaded header mapping for service {service}: {header}={attribute}")
