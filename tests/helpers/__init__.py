"""Test helpers for insightflow tests.

Helpers:
    FakeTimeAuthority: Controllable time authority for deterministic tests
    participant_ctx: SessionContext for a joined participant

Usage:
    from tests.helpers import FakeTimeAuthority
"""

from tests.helpers.contexts import participant_ctx
from tests.helpers.fake_time_authority import FakeTimeAuthority

__all__ = ["FakeTimeAuthority", "participant_ctx"]
