# -*- coding: utf-8 -*-
"""Location: ./trustheaders/db.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Database models and session factory for the OGC services connection log.

The proxy records one row per OGC service request in ``ogc_services_log``;
this package only reads it for connection statistics.
"""

# Standard
from datetime import datetime
from typing import Generator, Optional

# Third-Party
from sqlalchemy import create_engine, DateTime, Engine, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, Session, sessionmaker

# First-Party
from trustheaders.config import settings


class Base(DeclarativeBase):
    """Declarative base for connection log models."""


class OgcServiceLog(Base):
    """One logged OGC service request.

    Attributes:
        id: Row identifier.
        user_name: Principal that issued the request.
        date: Request timestamp.
        service: OGC service type, e.g. ``WMS``.
        layer: Requested layer.
        request: OGC request, e.g. ``GetMap``.
        org: Organization of the user.
        secrole: Roles of the user.
    """

    __tablename__ = "ogc_services_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_name: Mapped[str] = mapped_column(String(255), index=True)
    date: Mapped[datetime] = mapped_column(DateTime, index=True)
    service: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    layer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    request: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    org: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    secrole: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)


def build_engine(database_url: Optional[str] = None) -> Engine:
    """Create an engine for the connection log database.

    Args:
        database_url: SQLAlchemy URL, defaults to ``settings.database_url``.

    Returns:
        Engine: The engine.
    """
    url = database_url or settings.database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and always close it afterwards.

    Yields:
        Session: A SQLAlchemy session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
