"""Timebill - billable time tracking and invoicing host with a two-process command bridge.

Invariants:
    - Package root only declares the version (import side-effects prohibited)
"""

__version__ = "1.0.0"
