"""
Integration tests: real workers, real filesystem events.

Files are updated both in place, which emits several events per write, and
through a temporary file and an atomic rename, the way editors and build tools
save. Either way one content change means exactly one restart.
"""

import asyncio
import os

import pytest

from zatserver.models.runtime import LifecycleState


def _atomic_write(path, content):
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_text(content)
    os.replace(tmp, path)


@pytest.mark.integration
@pytest.mark.slow
class TestDependencyLifecycle:
    """End-to-end behaviour of one instance driven by its dependency files."""

    @pytest.mark.asyncio
    async def test_rewrite_then_rename(self, make_coordinator, fixture_dir, registry, exit_recorder, test_utils):
        coordinator = make_coordinator({"path": "fixtureDir"}, observe_filesystem=True)
        supervisor = coordinator.supervisor

        await coordinator.on_build_complete()
        assert supervisor.start_count == 1

        coordinator.manifest.write_text("{ }")
        assert await test_utils.wait_until(lambda: supervisor.start_count == 2)
        await asyncio.sleep(0.3)
        assert supervisor.start_count == 2
        assert len(registry) == 1

        os.rename(coordinator.manifest, fixture_dir / "manifest.json.bak")
        assert await test_utils.wait_until(lambda: exit_recorder.called)

        assert coordinator.state == LifecycleState.EXITING
        assert registry.is_ready_for_exit()
        exit_recorder.assert_called_once_with(0)

        (fixture_dir / "manifest.json.bak").write_text('{"after": "rename"}')
        _atomic_write(fixture_dir / "manifest.json", "{}")
        await asyncio.sleep(0.3)

        assert supervisor.start_count == 2
        assert not supervisor.is_running

    @pytest.mark.asyncio
    async def test_identical_rewrite_does_not_restart(self, make_coordinator, fixture_dir, test_utils):
        coordinator = make_coordinator({"path": "fixtureDir"}, observe_filesystem=True)
        await coordinator.on_build_complete()

        _atomic_write(coordinator.manifest, "{}")
        await asyncio.sleep(0.3)

        assert coordinator.supervisor.start_count == 1

        await coordinator.exit()

    @pytest.mark.asyncio
    async def test_identical_in_place_rewrite_does_not_restart(self, make_coordinator, fixture_dir):
        coordinator = make_coordinator({"path": "fixtureDir"}, observe_filesystem=True)
        await coordinator.on_build_complete()

        coordinator.manifest.write_text("{}")
        await asyncio.sleep(0.3)

        assert coordinator.supervisor.start_count == 1

        await coordinator.exit()

    @pytest.mark.asyncio
    async def test_atomic_save_restarts_once(self, make_coordinator, fixture_dir, test_utils):
        coordinator = make_coordinator({"path": "fixtureDir"}, observe_filesystem=True)
        await coordinator.on_build_complete()

        _atomic_write(coordinator.manifest, "{\"port\": 1}")
        assert await test_utils.wait_until(lambda: coordinator.supervisor.start_count == 2)
        await asyncio.sleep(0.3)

        assert coordinator.supervisor.start_count == 2
        assert coordinator.state == LifecycleState.RUNNING

        await coordinator.exit()

    @pytest.mark.asyncio
    async def test_settings_delete_exits(self, make_coordinator, fixture_dir, temp_dir, exit_recorder, test_utils):
        settings = temp_dir / "settings.yml"
        settings.write_text("port: 4567\n")
        coordinator = make_coordinator({"path": "fixtureDir"}, observe_filesystem=True)
        await coordinator.on_build_complete()

        _atomic_write(settings, "port: 4568\n")
        assert await test_utils.wait_until(lambda: coordinator.supervisor.start_count == 2)

        settings.unlink()
        assert await test_utils.wait_until(lambda: exit_recorder.called)
        assert not coordinator.supervisor.is_running

    @pytest.mark.asyncio
    async def test_two_instances_share_the_host(self, make_coordinator, temp_dir, registry, exit_recorder, test_utils):
        for name in ("one", "two"):
            (temp_dir / name).mkdir()
            (temp_dir / name / "manifest.json").write_text("{}")
        first = make_coordinator({"path": "one"}, name="one", observe_filesystem=True)
        second = make_coordinator({"path": "two"}, name="two", observe_filesystem=True)
        await first.on_build_complete()
        await second.on_build_complete()

        (temp_dir / "one" / "manifest.json").unlink()
        assert await test_utils.wait_until(lambda: first.state == LifecycleState.EXITING)
        assert await test_utils.wait_until(lambda: not first.supervisor.is_running)
        await asyncio.sleep(0.2)
        exit_recorder.assert_not_called()
        assert len(registry) == 1

        (temp_dir / "two" / "manifest.json").unlink()
        assert await test_utils.wait_until(lambda: exit_recorder.called)
        exit_recorder.assert_called_once_with(0)
