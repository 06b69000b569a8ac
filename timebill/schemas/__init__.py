"""Pydantic Schemas - validation for HTTP bodies, wire frames and command payloads.

Invariants:
    - Schemas validate at system boundary (HTTP body, socket frame, command arguments)
    - Domain enums from core/ used for closed-set fields

Design Decisions:
    - Separate from models: schemas are wire contracts, models are persistence
"""
