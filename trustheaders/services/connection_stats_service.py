# -*- coding: utf-8 -*-
"""Location: ./trustheaders/services/connection_stats_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Connection Statistics Service.

Counts the OGC layer connections of every user over a year, or over one month
of that year.
"""

# Standard
import logging
from typing import Any, Dict, List, Optional

# Third-Party
from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

# First-Party
from trustheaders.db import OgcServiceLog

logger = logging.getLogger(__name__)

USER_COLUMN = "user_name"
LAYER_COLUMN = "layer"
CONNECTIONS_COLUMN = "connections"


def retrieve_layer_connections_for_user(db: Session, year: int, month: Optional[int] = None) -> List[Dict[str, Any]]:
    """Number of connections per user and layer.

    Rows are selected by calendar year, not ISO week-numbering year, so
    connections logged from 29 to 31 December always count towards ``year``
    and early January days are never counted in the previous year. This keeps
    the query portable between SQLite and PostgreSQL.

    Args:
        db: Database session.
        year: Calendar year, must be positive.
        month: Month of ``year`` (1-12); ``None`` or any value below 1 for the whole year.

    Returns:
        List[Dict[str, Any]]: Rows with ``user_name``, ``layer`` and ``connections``,
        ordered by user then layer.

    Raises:
        ValueError: If ``year`` is not positive.
    """
    if year <= 0:
        raise ValueError("year is expected")

    connections = func.count(OgcServiceLog.layer).label(CONNECTIONS_COLUMN)
    stmt = select(OgcServiceLog.user_name, OgcServiceLog.layer, connections).where(extract("year", OgcServiceLog.date) == year)
    if month and month > 0:
        stmt = stmt.where(extract("month", OgcServiceLog.date) == month)
    stmt = stmt.group_by(OgcServiceLog.user_name, OgcServiceLog.layer).order_by(OgcServiceLog.user_name, OgcServiceLog.layer)

    logger.debug(f"Retrieving layer connections for year={year} month={month}")
    return [{USER_COLUMN: row.user_name, LAYER_COLUMN: row.layer, CONNECTIONS_COLUMN: int(row.connections)} for row in db.execute(stmt)]
