"""Infrastructure Layer - database session management and logging setup.

Invariants:
    - Infrastructure never imports from services/ or bridge/
    - All SQLAlchemy failures surface as PersistenceError (core/errors.py)
"""
