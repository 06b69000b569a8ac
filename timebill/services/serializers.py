"""Serializers - ORM rows to JSON-native camelCase dicts for command results.

Money is serialized as a 2-decimal string, datetimes as ISO-8601 UTC, dates as ISO dates.
"""

from datetime import date, datetime
from decimal import Decimal

from timebill.core.clock import ensure_utc
from timebill.core.invoice_snapshot import money
from timebill.models import Client, Invoice, Project, Task, TimeEntry


def _money(value: Decimal | None) -> str | None:
    return None if value is None else money(Decimal(value))


def _dt(value: datetime | None) -> str | None:
    return None if value is None else ensure_utc(value).isoformat()


def _date(value: date | None) -> str | None:
    return None if value is None else value.isoformat()


def client_to_dict(client: Client) -> dict:
    return {
        "id": client.id,
        "name": client.name,
        "email": client.email,
        "hourlyRate": _money(client.hourly_rate),
        "createdAt": _dt(client.created_at),
        "updatedAt": _dt(client.updated_at),
    }


def project_to_dict(project: Project) -> dict:
    return {
        "id": project.id,
        "name": project.name,
        "clientId": project.client_id,
        "hourlyRate": _money(project.hourly_rate),
        "isDefault": project.is_default,
        "createdAt": _dt(project.created_at),
        "updatedAt": _dt(project.updated_at),
    }


def task_to_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "name": task.name,
        "projectId": task.project_id,
        "description": task.description,
        "createdAt": _dt(task.created_at),
        "updatedAt": _dt(task.updated_at),
    }


def time_entry_to_dict(entry: TimeEntry) -> dict:
    return {
        "id": entry.id,
        "clientId": entry.client_id,
        "projectId": entry.project_id,
        "taskId": entry.task_id,
        "description": entry.description,
        "startTime": _dt(entry.start_time),
        "endTime": _dt(entry.end_time),
        "duration": entry.duration,
        "carriedMinutes": entry.carried_minutes,
        "isActive": entry.is_active,
        "isInvoiced": entry.is_invoiced,
        "invoiceId": entry.invoice_id,
        "clientName": entry.client.name if entry.client else None,
        "projectName": entry.project.name if entry.project else None,
        "taskName": entry.task.name if entry.task else None,
        "createdAt": _dt(entry.created_at),
        "updatedAt": _dt(entry.updated_at),
    }


def invoice_to_dict(invoice: Invoice) -> dict:
    return {
        "id": invoice.id,
        "invoiceNumber": invoice.invoice_number,
        "clientId": invoice.client_id,
        "clientName": invoice.client.name if invoice.client else None,
        "totalAmount": _money(invoice.total_amount),
        "periodStart": _date(invoice.period_start),
        "periodEnd": _date(invoice.period_end),
        "status": invoice.status,
        "dueDate": _date(invoice.due_date),
        "createdAt": _dt(invoice.created_at),
        "updatedAt": _dt(invoice.updated_at),
    }
