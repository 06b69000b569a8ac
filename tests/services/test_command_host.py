"""Command Host - envelopes, transactions, serialization of writes and timer events.

Tests cover:
    - Success -> {success: true, data}; business error -> {success: false, error} verbatim
    - Unexpected exceptions reported without internals
    - A failed command commits nothing
    - Concurrent timer starts: exactly one succeeds
    - Timer events published after a committed start/stop
    - Full workflow: catalog -> timer -> invoice -> regenerate -> delete
"""

import asyncio

from timebill.services.command_host import UNEXPECTED_ERROR
from timebill.services.command_router import CommandRouter


async def test_success_envelope(command_host):
    result = await command_host.dispatch("clients:create", [{"name": "Acme", "hourlyRate": "150"}])
    assert result["success"] is True
    assert result["data"]["name"] == "Acme"
    assert result["data"]["hourlyRate"] == "150.00"


async def test_unknown_channel_envelope(command_host):
    assert await command_host.dispatch("foo:bar") == {
        "success": False, "error": "No handler registered for channel: foo:bar",
    }


async def test_unexpected_error_hides_details(command_host, monkeypatch):
    async def explode(self, channel, args):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(CommandRouter, "execute", explode)
    assert await command_host.dispatch("clients:list") == {
        "success": False, "error": UNEXPECTED_ERROR,
    }


async def test_failed_command_commits_nothing(command_host, catalog):
    result = await command_host.dispatch(
        "timeEntries:create",
        [{"clientId": catalog.acme, "projectId": catalog.research,
          "startTime": "2025-03-03T09:00:00Z", "duration": 30}],
    )
    assert result["success"] is False
    listed = await command_host.dispatch("timeEntries:list")
    assert listed == {"success": True, "data": []}


async def test_concurrent_starts_exactly_one_wins(command_host, catalog):
    results = await asyncio.gather(*[
        command_host.dispatch("timeEntries:start", [{"clientId": catalog.acme}])
        for _ in range(2)
    ])
    assert sorted(r["success"] for r in results) == [False, True]
    [failed] = [r for r in results if not r["success"]]
    assert "already running" in failed["error"]

    entries = (await command_host.dispatch("timeEntries:list", [{"isActive": True}]))["data"]
    assert len(entries) == 1


async def test_timer_events(command_host, clock, catalog):
    subscription = command_host.events.subscribe()

    started = await command_host.dispatch("timeEntries:start", [{"taskId": catalog.checkout}])
    clock.advance(minutes=37)
    stopped = await command_host.dispatch("timeEntries:stop", [started["data"]["id"], 15])
    await command_host.dispatch("timeEntries:stop", [started["data"]["id"], 15])

    events = subscription.drain()
    assert [(e["type"], e["action"]) for e in events] == [("timer", "start"), ("timer", "stop")]
    assert events[1]["entry"] == stopped["data"]
    assert stopped["data"]["duration"] == 30


async def test_full_workflow(command_host, clock):
    async def ok(channel, *args):
        result = await command_host.dispatch(channel, list(args))
        assert result["success"], result
        return result["data"]

    client = await ok("clients:create", {"name": "Acme", "hourlyRate": "150"})
    project = await ok("projects:create", {"name": "E-commerce", "clientId": client["id"], "hourlyRate": "175"})
    task = await ok("tasks:create", {"name": "Checkout", "projectId": project["id"]})

    for _ in range(2):
        entry = await ok("timeEntries:start", {"taskId": task["id"]})
        clock.advance(minutes=240)
        await ok("timeEntries:stop", entry["id"])
        clock.advance(minutes=60)

    summary = await ok("timeEntries:summarize", {"clientId": client["id"]})
    assert summary["totalAmount"] == "1400.00"

    invoice = await ok("invoices:generate", client["id"], "2025-03-01", "2025-03-31")
    assert invoice["invoiceNumber"] == "INV-20250301-001"
    assert invoice["totalAmount"] == "1400.00"
    assert invoice["clientName"] == "Acme"

    snapshot = await ok("invoices:getSnapshot", invoice["id"])
    regenerated = await ok("invoices:regenerate", invoice["id"])
    assert await ok("invoices:getSnapshot", invoice["id"]) == snapshot
    assert regenerated["totalAmount"] == "1400.00"

    filename = await ok("invoices:filename", invoice["id"])
    assert filename == f"Invoice-Acme-INV-20250301-001-{invoice['id']}.pdf"

    deleted = await ok("invoices:delete", invoice["id"])
    assert deleted["unlinkedEntries"] == 2
    assert await ok("timeEntries:list", {"isInvoiced": True}) == []
    assert await ok("settings:getLastUsed") == {
        "clientId": client["id"], "projectId": project["id"], "taskId": task["id"],
    }
