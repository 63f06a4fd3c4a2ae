# -*- coding: utf-8 -*-
"""Location: ./tests/unit/trustheaders/conftest.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Shared fixtures: an in-memory directory gateway.
"""

# Standard
from typing import Dict, List, Optional, Sequence

# Third-Party
import pytest

# First-Party
from trustheaders.directory import AttributeBag, DirectoryError, EntryNotFoundError


class FakeDirectory:
    """In-memory directory honouring the gateway contract.

    Users are keyed by identifier, organizations by DN. Calls are recorded so
    tests can count directory round-trips.
    """

    def __init__(self, users: Optional[Dict[str, AttributeBag]] = None, entries: Optional[Dict[str, AttributeBag]] = None):
        self.users = users or {}
        self.entries = entries or {}
        self.searches: List[tuple] = []
        self.lookups: List[str] = []
        self.fail_search = False
        self.fail_lookup = False

    def search_for_user(self, username: str, attributes: Optional[Sequence[str]] = None) -> AttributeBag:
        self.searches.append((username, tuple(attributes) if attributes else None))
        if self.fail_search:
            raise DirectoryError("connection refused")
        if username not in self.users:
            raise EntryNotFoundError(f"User not found: {username}")
        entry = self.users[username]
        if attributes:
            return {k: v for k, v in entry.items() if k in attributes}
        return {k: v for k, v in entry.items() if k != "memberOf"}

    def lookup(self, dn: str) -> AttributeBag:
        self.lookups.append(dn)
        if self.fail_lookup:
            raise DirectoryError("connection refused")
        if dn not in self.entries:
            raise EntryNotFoundError(f"No such entry: {dn}")
        return self.entries[dn]


@pytest.fixture
def directory():
    """Directory with alice (no organization) and bob (member of geoteam)."""
    return FakeDirectory(
        users={
            "alice": {"uid": ["alice"], "mail": ["alice@x.org"], "givenName": ["Alice"]},
            "bob": {
                "uid": ["bob"],
                "mail": ["bob@x.org"],
                "givenName": ["Bob"],
                "memberOf": ["cn=ADMIN,ou=roles,dc=x", "cn=geoteam,ou=orgs,dc=x"],
            },
        },
        entries={"cn=geoteam,ou=orgs,dc=x": {"cn": ["geoteam"], "o": ["GeoTeam Inc"]}},
    )
