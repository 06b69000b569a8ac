"""Core Layer - pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, bridge/, infrastructure/, or db/
    - All functions are pure and deterministic (time comes from an injected Clock)

Design Decisions:
    - Functional core separated from imperative shell: rate resolution, rounding,
      snapshot building and filename rules live here; engines in services/ do the IO
"""
