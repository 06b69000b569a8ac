"""Command Payload Schemas - Pydantic models validating command arguments at the router.

Invariants:
    - Payload keys are camelCase on the wire (clientId, hourlyRate, ...), snake_case in Python
    - Update models are partial: only fields actually sent are applied (exclude_unset)
    - Unknown keys are rejected, never silently dropped
    - Rates are non-negative decimals; names are stripped and non-empty

Design Decisions:
    - alias_generator=to_camel + populate_by_name: one model serves wire and Python callers
    - field_validator for side-effect-free transforms (strip) - keeps models pure
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from timebill.core.domain_types import InvoiceStatus


class CommandPayload(BaseModel):
    """Base for all command payloads."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid",
    )

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class NamedPayload(CommandPayload):
    """Payload carrying a display name."""

    @field_validator("name", check_fields=False)
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


# --- Catalog -----------------------------------------------------------------

class ClientCreate(NamedPayload):
    name: str = Field(max_length=200)
    email: str | None = Field(None, max_length=200)
    hourly_rate: Decimal | None = Field(None, ge=0, decimal_places=2)


class ClientUpdate(NamedPayload):
    name: str | None = Field(None, max_length=200)
    email: str | None = Field(None, max_length=200)
    hourly_rate: Decimal | None = Field(None, ge=0, decimal_places=2)


class ProjectCreate(NamedPayload):
    name: str = Field(max_length=200)
    client_id: int
    hourly_rate: Decimal | None = Field(None, ge=0, decimal_places=2)
    is_default: bool = False


class ProjectUpdate(NamedPayload):
    name: str | None = Field(None, max_length=200)
    client_id: int | None = None
    hourly_rate: Decimal | None = Field(None, ge=0, decimal_places=2)
    is_default: bool | None = None


class TaskCreate(NamedPayload):
    name: str = Field(max_length=200)
    project_id: int
    description: str | None = None


class TaskUpdate(NamedPayload):
    name: str | None = Field(None, max_length=200)
    project_id: int | None = None
    description: str | None = None


# --- Time entries --------------------------------------------------------------

class TimerStart(CommandPayload):
    """Arguments of timeEntries:start. All relations optional."""
    client_id: int | None = None
    project_id: int | None = None
    task_id: int | None = None
    description: str | None = None


class TimeEntryCreate(CommandPayload):
    """Manual (already finished) time entry."""
    client_id: int | None = None
    project_id: int | None = None
    task_id: int | None = None
    description: str | None = None
    start_time: datetime
    end_time: datetime | None = None
    duration: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def require_end_or_duration(self):
        if self.end_time is None and self.duration is None:
            raise ValueError("endTime or duration is required")
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("endTime must not be before startTime")
        return self


class TimeEntryUpdate(CommandPayload):
    client_id: int | None = None
    project_id: int | None = None
    task_id: int | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration: int | None = Field(None, ge=0)


class TimeEntryFilter(CommandPayload):
    client_id: int | None = None
    project_id: int | None = None
    task_id: int | None = None
    invoice_id: int | None = None
    is_invoiced: bool | None = None
    is_active: bool | None = None
    start_date: date | None = None
    end_date: date | None = None


# --- Invoices --------------------------------------------------------------------

class InvoiceFilter(CommandPayload):
    client_id: int | None = None
    status: InvoiceStatus | None = None
