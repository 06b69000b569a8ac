"""Rate Resolver - pure hourly-rate resolution for a time entry.

Invariants:
    - Order: project.hourly_rate -> client.hourly_rate -> 0 (source NONE)
    - "Set" means not None: a zero rate that is set keeps its source
    - Tasks never carry rates
    - Pure function: no DB access, no side effects

Design Decisions:
    - Returns RateResolution(rate, source) instead of a bare number so invoice lines
      and live totals can tell "no rate" apart from "zero rate"
    - Project/client default to the entry's own relationships when not passed
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from timebill.core.domain_types import RateSource

_ZERO = Decimal("0.00")


@dataclass(frozen=True)
class RateResolution:
    """Effective hourly rate and where it came from."""
    rate: Decimal
    source: RateSource

    @property
    def is_billable(self) -> bool:
        return self.source is not RateSource.NONE


def resolve_rate(entry: Any, project: Any = None, client: Any = None) -> RateResolution:
    """Resolve the effective hourly rate for an entry."""
    if project is None:
        project = getattr(entry, "project", None)
    if client is None:
        client = getattr(entry, "client", None)
        if client is None and project is not None:
            client = getattr(project, "client", None)

    project_rate = getattr(project, "hourly_rate", None) if project else None
    if project_rate is not None:
        return RateResolution(_as_decimal(project_rate), RateSource.PROJECT)

    client_rate = getattr(client, "hourly_rate", None) if client else None
    if client_rate is not None:
        return RateResolution(_as_decimal(client_rate), RateSource.CLIENT)

    return RateResolution(_ZERO, RateSource.NONE)


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
