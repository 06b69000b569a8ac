"""Domain Types - rich types that replace bare primitives across the codebase.

Invariants:
    - EntryId, InvoiceId, ClientId, ProjectId, TaskId wrap int primary keys
    - RoundingUnit is the closed set {5, 10, 15, 30, 60}
    - InvoiceStatus is the closed set {generated, sent, paid, draft}
    - All valid states encoded as Enums - no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum, IntEnum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ClientId = NewType("ClientId", int)
ProjectId = NewType("ProjectId", int)
TaskId = NewType("TaskId", int)
EntryId = NewType("EntryId", int)
InvoiceId = NewType("InvoiceId", int)


# ─── Enums ───────────────────────────────────────────────────────

class RoundingUnit(IntEnum):
    """Minute granularity a stopped timer is snapped to."""
    FIVE = 5
    TEN = 10
    FIFTEEN = 15
    THIRTY = 30
    SIXTY = 60


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states - maps to DB `status` column."""
    GENERATED = "generated"
    SENT = "sent"
    PAID = "paid"
    DRAFT = "draft"


class RateSource(str, Enum):
    """Where a resolved hourly rate came from."""
    PROJECT = "project"
    CLIENT = "client"
    NONE = "none"


class ResumePolicy(str, Enum):
    """What happens to time recorded before a resume.

    ACCUMULATE keeps the earlier duration and adds it to the next stop;
    DISCARD starts counting from zero again.
    """
    ACCUMULATE = "accumulate"
    DISCARD = "discard"


class BridgeMode(str, Enum):
    """Which CommandTransport the process uses, chosen once at startup."""
    DIRECT = "direct"
    FORWARDING = "forwarding"


class ConnectionState(str, Enum):
    """Forwarding transport connection states published on its status channel."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"
