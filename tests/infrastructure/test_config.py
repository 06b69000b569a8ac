"""Settings - environment-driven configuration."""

from timebill.config import Settings
from timebill.core.domain_types import BridgeMode, ResumePolicy, RoundingUnit


def test_defaults():
    settings = Settings(_env_file=None, database_url="sqlite+aiosqlite:///timebill.db")
    assert settings.default_rounding_unit is RoundingUnit.FIFTEEN
    assert settings.resume_policy is ResumePolicy.ACCUMULATE
    assert settings.bridge_request_timeout_seconds == 5.0
    assert settings.bridge_max_immediate_attempts == 3
    assert settings.bridge_backoff_seconds == 2.0


def test_postgres_url_uses_asyncpg():
    settings = Settings(_env_file=None, database_url="postgresql://u:p@db/timebill")
    assert settings.database_url == "postgresql+asyncpg://u:p@db/timebill"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("BRIDGE_MODE", "forwarding")
    monkeypatch.setenv("RESUME_POLICY", "discard")
    monkeypatch.setenv("HOST_WS_URL", "ws://host.internal:3001/ws/ipc")
    settings = Settings(_env_file=None)
    assert settings.bridge_mode is BridgeMode.FORWARDING
    assert settings.resume_policy is ResumePolicy.DISCARD
    assert settings.host_ws_url == "ws://host.internal:3001/ws/ipc"
