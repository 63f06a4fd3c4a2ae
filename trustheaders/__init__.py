# -*- coding: utf-8 -*-
"""Location: ./trustheaders/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Trust headers package.
Enriches proxied requests with headers derived from a user's LDAP entry.
"""

__version__ = "0.3.0"
