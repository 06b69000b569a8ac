"""API Layer - FastAPI routes, WebSocket host endpoint and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Routes never contain business logic (delegate to the transport or command host)
"""
