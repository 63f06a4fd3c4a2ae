# -*- coding: utf-8 -*-
"""Location: ./tests/unit/trustheaders/services/test_session_cache.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Unit tests for the session header cache.
"""

# Standard
import logging
import threading
import time
from unittest.mock import MagicMock

# Third-Party
import pytest

# First-Party
from trustheaders.identity import authenticated, UnauthenticatedError
from trustheaders.models import Header
from trustheaders.services.session_cache import CACHED_HEADERS_KEY, HeaderSession, service_cache_key, SessionHeaderCache

ALICE_HEADERS = [Header(name="sec-email", value="alice@x.org")]
BOB_HEADERS = [Header(name="sec-email", value="bob@x.org")]


@pytest.fixture
def cache():
    return SessionHeaderCache()


@pytest.fixture
def session():
    return HeaderSession()


def test_service_cache_key():
    assert service_cache_key(None) == CACHED_HEADERS_KEY
    assert service_cache_key("analytics") == f"{CACHED_HEADERS_KEY}@analytics"


def test_miss_computes_and_stores(cache, session):
    compute = MagicMock(return_value=ALICE_HEADERS)
    with authenticated("alice"):
        assert cache.get_or_compute(session, "analytics", compute) == ALICE_HEADERS
    compute.assert_called_once_with()
    assert session.username == "alice"
    assert session.headers[service_cache_key("analytics")] == ALICE_HEADERS


def test_hit_does_not_recompute(cache, session):
    compute = MagicMock(return_value=ALICE_HEADERS)
    with authenticated("alice"):
        cache.get_or_compute(session, "analytics", compute)
        assert cache.get_or_compute(session, "analytics", compute) == ALICE_HEADERS
    compute.assert_called_once_with()


def test_services_cached_separately(cache, session):
    with authenticated("alice"):
        cache.get_or_compute(session, "analytics", lambda: ALICE_HEADERS)
        compute = MagicMock(return_value=[])
        assert cache.get_or_compute(session, None, compute) == []
    compute.assert_called_once_with()
    assert set(session.headers) == {service_cache_key("analytics"), service_cache_key(None)}


def test_identity_change_forces_recompute(cache, session):
    with authenticated("alice"):
        cache.get_or_compute(session, "analytics", lambda: ALICE_HEADERS)
    with authenticated("bob"):
        assert cache.get_or_compute(session, "analytics", lambda: BOB_HEADERS) == BOB_HEADERS
    assert session.username == "bob"


def test_identity_change_discards_other_services(cache, session):
    with authenticated("alice"):
        cache.get_or_compute(session, "serviceA", lambda: ALICE_HEADERS)
    with authenticated("bob"):
        cache.get_or_compute(session, "serviceB", lambda: BOB_HEADERS)
        compute = MagicMock(return_value=BOB_HEADERS)
        assert cache.get_or_compute(session, "serviceA", compute) == BOB_HEADERS
    compute.assert_called_once_with()


def test_returned_list_is_a_copy(cache, session):
    with authenticated("alice"):
        cache.get_or_compute(session, None, lambda: list(ALICE_HEADERS))
        cache.get_cached_headers(session, None).append(Header(name="x"))
        assert cache.get_cached_headers(session, None) == ALICE_HEADERS


def test_corrupted_entry_is_a_miss(cache, session, caplog):
    session.username = "alice"
    session.headers[service_cache_key(None)] = "garbage"
    caplog.set_level(logging.INFO, logger="trustheaders.services.session_cache")
    with authenticated("alice"):
        assert cache.get_or_compute(session, None, lambda: ALICE_HEADERS) == ALICE_HEADERS
    assert "Unable to lookup cached user's attributes" in caplog.text


def test_unauthenticated_fails_fast(cache, session):
    compute = MagicMock()
    with authenticated(None):
        with pytest.raises(UnauthenticatedError):
            cache.get_or_compute(session, None, compute)
    compute.assert_not_called()


def test_concurrent_requests_in_one_session_resolve_once(cache, session):
    calls = []

    def compute():
        calls.append(threading.current_thread().name)
        time.sleep(0.05)
        return ALICE_HEADERS

    results = []

    def worker():
        with authenticated("alice"):
            results.append(cache.get_or_compute(session, "analytics", compute))

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert results == [ALICE_HEADERS] * 5


def test_sessions_do_not_block_each_other(cache):
    first, second = HeaderSession(), HeaderSession()
    entered = threading.Event()
    release = threading.Event()

    def slow():
        entered.set()
        release.wait(2)
        return ALICE_HEADERS

    def worker():
        with authenticated("alice"):
            cache.get_or_compute(first, None, slow)

    t = threading.Thread(target=worker)
    t.start()
    try:
        assert entered.wait(2)
        with authenticated("bob"):
            assert cache.get_or_compute(second, None, lambda: BOB_HEADERS) == BOB_HEADERS
    finally:
        release.set()
        t.join()


def test_services_in_one_session_serialize(cache, session):
    entered = threading.Event()
    release = threading.Event()
    second_done = threading.Event()

    def slow():
        entered.set()
        release.wait(2)
        return ALICE_HEADERS

    def first_worker():
        with authenticated("alice"):
            cache.get_or_compute(session, "serviceA", slow)

    def second_worker():
        with authenticated("alice"):
            cache.get_or_compute(session, "serviceB", lambda: BOB_HEADERS)
        second_done.set()

    first = threading.Thread(target=first_worker)
    second = threading.Thread(target=second_worker)
    first.start()
    try:
        assert entered.wait(2)
        second.start()
        assert not second_done.wait(0.1)
    finally:
        release.set()
        first.join()
    second.join()
    assert second_done.is_set()
    assert set(session.headers) == {service_cache_key("serviceA"), service_cache_key("serviceB")}
