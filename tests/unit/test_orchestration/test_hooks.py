"""
Unit tests for the build-pass hook.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from zatserver.orchestration import BuildHook


@pytest.mark.unit
class TestBuildHook:
    """Test cases for BuildHook."""

    def test_tap_records_name(self):
        hook = BuildHook()
        callback = Mock()

        hook.tap("ZAT Server", callback)

        assert hook.taps == [("ZAT Server", callback)]
        assert hook.name == "afterEmit"

    @pytest.mark.asyncio
    async def test_call_runs_taps_in_order(self):
        hook = BuildHook()
        order = []
        hook.tap("first", lambda: order.append("first"))

        async def second():
            order.append("second")

        hook.tap("second", second)

        failures = await hook.call()

        assert order == ["first", "second"]
        assert failures == []

    @pytest.mark.asyncio
    async def test_failing_tap_does_not_stop_siblings(self):
        hook = BuildHook()
        error = RuntimeError("boom")
        sibling = AsyncMock()
        hook.tap("broken", AsyncMock(side_effect=error))
        hook.tap("sibling", sibling)

        failures = await hook.call()

        assert failures == [("broken", error)]
        sibling.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_call_without_taps(self):
        assert await BuildHook().call() == []
