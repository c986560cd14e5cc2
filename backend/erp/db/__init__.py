"""Database Infrastructure — SQLAlchemy Base and async session factory.

Invariants:
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL; aiosqlite for tests
"""
