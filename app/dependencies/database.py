# app/dependencies/database.py

from typing import AsyncGenerator

from app.core.database import db


async def get_db_connection() -> AsyncGenerator:
    """
    Request-scoped pooled connection (one transaction per request).
    """
    async for conn in db.get_connection():
        yield conn
