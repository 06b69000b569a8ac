"""Services Layer - timer and invoice engines, entity stores, command host and router.

Invariants:
    - Every service receives its AsyncSession from the caller (one session per command)
    - Command routing uses an explicit dict mapping (no auto-discovery)

Design Decisions:
    - Stores split by aggregate: catalog (clients/projects/tasks), time entries, settings
"""
