"""Invoice Filename - filesystem-safe export names for rendered invoices.

Invariants:
    - Output: Invoice-{client}-{number}[-{id}][-{timestampMs}].pdf
    - Client part never contains <>:"/\\|?*, whitespace or hyphens
    - Client part is at most 25 characters, never starts or ends with "."
    - Empty client part becomes "Unknown.Client"
"""

import re

MAX_CLIENT_LENGTH = 25
UNKNOWN_CLIENT = "Unknown.Client"

_FORBIDDEN = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r"\s+")


def sanitize_client_name(client_name: str | None) -> str:
    name = (client_name or "").strip()
    name = _FORBIDDEN.sub("", name)
    name = _WHITESPACE.sub(".", name)
    name = name.replace("-", "")
    name = name[:MAX_CLIENT_LENGTH].strip(".")
    return name or UNKNOWN_CLIENT


def create_invoice_filename(
    client_name: str | None,
    invoice_number: str,
    invoice_id: int | None = None,
    timestamp_ms: int | None = None,
) -> str:
    """Build the export filename for an invoice."""
    parts = ["Invoice", sanitize_client_name(client_name), invoice_number]
    if invoice_id is not None:
        parts.append(str(invoice_id))
    if timestamp_ms is not None:
        parts.append(str(timestamp_ms))
    return "-".join(parts) + ".pdf"
