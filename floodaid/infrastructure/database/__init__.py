# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure.

Example:
    from floodaid.infrastructure.database import get_session

    async with get_session() as session:
        result = await session.execute(select(Province))
"""

from floodaid.infrastructure.database.connection import (
    DatabaseError,
    build_engine,
    build_sessionmaker,
    check_database_connection,
    close_database,
    create_schema,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "build_engine",
    "build_sessionmaker",
    "init_database",
    "close_database",
    "create_schema",
    "get_engine",
    "get_sessionmaker",
    "get_session",
    "check_database_connection",
]
