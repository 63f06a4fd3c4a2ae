# -*- coding: utf-8 -*-
"""Location: ./trustheaders/codec.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Binary-safe header value encoding.

Header values that may carry non-ASCII text or binary data are sent as
``{base64}<payload>``. Consumers call :func:`decode_header_value`, which leaves
plain values untouched.

Examples:
    >>> encode_base64("Zoé")
    '{base64}Wm/DqQ=='
    >>> decode_header_value("{base64}Wm/DqQ==")
    'Zoé'
    >>> decode_header_value("plain")
    'plain'
"""

# Standard
import base64
from typing import Optional, Union

BASE64_PREFIX = "{base64}"

# Attribute spec prefix requesting the encoding in headers-mapping.properties
ENCODING_SPEC_PREFIX = "base64:"


def encode_base64(value: Union[str, bytes]) -> str:
    """Encode a value as a prefixed base64 header value.

    Args:
        value: Text (encoded as UTF-8) or raw bytes.

    Returns:
        str: ``{base64}`` followed by the standard base64 encoding.

    Examples:
        >>> encode_base64(b"\\x00\\x01")
        '{base64}AAE='
    """
    raw = value if isinstance(value, bytes) else value.encode("utf-8")
    return BASE64_PREFIX + base64.b64encode(raw).decode("ascii")


def decode_header_value(value: Optional[str]) -> Optional[str]:
    """Decode a header value produced by :func:`encode_base64`.

    Args:
        value: Header value as received.

    Returns:
        Optional[str]: Decoded text, or the value unchanged when not prefixed.

    Examples:
        >>> decode_header_value(None) is None
        True
    """
    if value is None or not value.startswith(BASE64_PREFIX):
        return value
    return base64.b64decode(value[len(BASE64_PREFIX) :]).decode("utf-8")


def split_attribute_spec(spec: str) -> tuple[str, bool]:
    """Split an attribute spec into attribute name and encoding flag.

    Args:
        spec: Mapping value, e.g. ``mail`` or ``base64:cn``.

    Returns:
        tuple[str, bool]: Attribute name and whether values must be encoded.

    Examples:
        >>> split_attribute_spec("base64:cn")
        ('cn', True)
        >>> split_attribute_spec("mail")
        ('mail', False)
    """
    if spec.startswith(ENCODING_SPEC_PREFIX):
        return spec[len(ENCODING_SPEC_PREFIX) :], True
    return spec, False
