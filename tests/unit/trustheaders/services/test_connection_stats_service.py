# -*- coding: utf-8 -*-
"""Location: ./tests/unit/trustheaders/services/test_connection_stats_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Unit tests for the connection statistics service, against in-memory SQLite.
"""

# Standard
from datetime import datetime

# Third-Party
import pytest
from sqlalchemy.orm import sessionmaker

# First-Party
from trustheaders.db import Base, build_engine, OgcServiceLog
from trustheaders.services.connection_stats_service import retrieve_layer_connections_for_user


@pytest.fixture
def db():
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    rows = [
        ("bob", datetime(2024, 3, 2, 10, 0), "topp:states"),
        ("bob", datetime(2024, 3, 9, 11, 0), "topp:states"),
        ("bob", datetime(2024, 4, 1, 8, 30), "topp:roads"),
        ("alice", datetime(2024, 3, 15, 9, 0), "topp:states"),
        ("alice", datetime(2024, 12, 31, 23, 0), "topp:roads"),
        ("alice", datetime(2023, 3, 15, 9, 0), "topp:states"),
    ]
    session.add_all([OgcServiceLog(user_name=u, date=d, layer=layer, service="WMS", request="GetMap", org="geoteam", secrole="ROLE_USER") for u, d, layer in rows])
    session.commit()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def test_whole_year(db):
    assert retrieve_layer_connections_for_user(db, 2024) == [
        {"user_name": "alice", "layer": "topp:roads", "connections": 1},
        {"user_name": "alice", "layer": "topp:states", "connections": 1},
        {"user_name": "bob", "layer": "topp:roads", "connections": 1},
        {"user_name": "bob", "layer": "topp:states", "connections": 2},
    ]


def test_single_month(db):
    assert retrieve_layer_connections_for_user(db, 2024, 3) == [
        {"user_name": "alice", "layer": "topp:states", "connections": 1},
        {"user_name": "bob", "layer": "topp:states", "connections": 2},
    ]


def test_month_zero_means_whole_year(db):
    assert retrieve_layer_connections_for_user(db, 2024, 0) == retrieve_layer_connections_for_user(db, 2024)


def test_negative_month_means_whole_year(db):
    assert retrieve_layer_connections_for_user(db, 2024, -3) == retrieve_layer_connections_for_user(db, 2024)


def test_calendar_year_boundary(db):
    db.add(OgcServiceLog(user_name="carol", date=datetime(2024, 12, 30, 12, 0), layer="topp:states"))
    db.add(OgcServiceLog(user_name="carol", date=datetime(2025, 1, 1, 12, 0), layer="topp:states"))
    db.commit()
    assert {"user_name": "carol", "layer": "topp:states", "connections": 1} in retrieve_layer_connections_for_user(db, 2024)
    assert retrieve_layer_connections_for_user(db, 2025) == [{"user_name": "carol", "layer": "topp:states", "connections": 1}]


def test_year_without_data(db):
    assert retrieve_layer_connections_for_user(db, 2001) == []


def test_invalid_year(db):
    with pytest.raises(ValueError, match="year is expected"):
        retrieve_layer_connections_for_user(db, 0)
