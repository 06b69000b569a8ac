"""Database Infrastructure - SQLAlchemy declarative Base.

Invariants:
    - Single async engine per process (initialized via infrastructure.database.init_db)
    - All sessions are async (AsyncSession)

Design Decisions:
    - aiosqlite for the desktop default, asyncpg when DATABASE_URL points at PostgreSQL
"""
