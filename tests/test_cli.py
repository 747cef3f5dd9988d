"""
Tests for the zat-supervise command-line interface.
"""

import asyncio
import os
import signal

import psutil
import pytest

from zatserver.cli.main import (
    build_parser,
    main_cli,
    parse_option_argument,
    parse_options,
    resolve_supervisor_config,
    run_build_command,
    run_supervisor,
)
from zatserver.config import get_config
from zatserver.models.config import SupervisorConfig, TargetConfig
from zatserver.validation import ValidationError


class TestOptionParsing:
    """Test cases for -o/--option values."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("port=4567", ("port", 4567)),
            ("offset=-2", ("offset", -2)),
            ("ratio=1.5", ("ratio", 1.5)),
            ("port=007", ("port", "007")),
            ("offset=-0", ("offset", "-0")),
            ("ratio=1.50", ("ratio", "1.50")),
            ("logLevel=debug", ("logLevel", "debug")),
            ("version=1.2.3", ("version", "1.2.3")),
            ("host=", ("host", "")),
            ("verbose", ("verbose", None)),
            ("url=http://x/?a=b", ("url", "http://x/?a=b")),
        ],
    )
    def test_parse_option_argument(self, text, expected):
        assert parse_option_argument(text) == expected

    def test_missing_key(self):
        with pytest.raises(ValidationError):
            parse_option_argument("=4567")

    def test_parse_options_keeps_order(self):
        options = parse_options(["path=apps/app", "p=4567", "watch"])

        assert list(options.items()) == [("path", "apps/app"), ("p", 4567), ("watch", None)]


class TestConfigResolution:
    """Test cases for choosing the configuration source."""

    def test_ad_hoc_options(self):
        args = build_parser().parse_args(["-o", "path=apps/app", "-o", "port=4567"])

        config = resolve_supervisor_config(args)

        assert len(config.targets) == 1
        assert config.targets[0].name == "zat-server"
        assert config.targets[0].options == {"path": "apps/app", "port": 4567}

    def test_explicit_config_file(self, config_file):
        args = build_parser().parse_args(["-c", str(config_file)])

        config = resolve_supervisor_config(args)

        assert [t.name for t in config.targets] == ["app", "admin"]

    def test_default_file_in_cwd(self, config_file, monkeypatch):
        monkeypatch.chdir(config_file.parent)

        config = resolve_supervisor_config(build_parser().parse_args([]))

        assert config.stop_timeout == 2.5

    def test_defaults_without_file(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)

        config = resolve_supervisor_config(build_parser().parse_args([]))

        assert config.command == ["zat", "server"]
        assert [t.options for t in config.targets] == [{}]

    def test_build_command_override(self, config_file):
        args = build_parser().parse_args(["-c", str(config_file), "--build-command", "make"])

        assert resolve_supervisor_config(args).build_command == "make"

    def test_build_command_override_leaves_cached_config_alone(self, config_file):
        args = build_parser().parse_args(["-c", str(config_file), "--build-command", "make"])

        config = resolve_supervisor_config(args)

        assert config.build_command == "make"
        assert config is not get_config()
        assert get_config().build_command is None
        assert resolve_supervisor_config(build_parser().parse_args(["-c", str(config_file)])).build_command is None

    def test_missing_config_file_exits(self, temp_dir):
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["-c", str(temp_dir / "nope.toml")])

        assert exc_info.value.code == 1


class TestRunSupervisor:
    """Test cases for the supervisor main loop."""

    @pytest.mark.asyncio
    async def test_run_build_command(self):
        assert await run_build_command("exit 0") == 0
        assert await run_build_command("exit 4") == 4

    @pytest.mark.asyncio
    async def test_failed_build_starts_nothing(self, temp_dir, sleeper_command):
        config = SupervisorConfig(
            command=sleeper_command,
            build_command="exit 3",
            targets=[TargetConfig(name="app", options={"path": "."})],
        )
        (temp_dir / "manifest.json").write_text("{}")

        assert await run_supervisor(config, cwd=temp_dir) == 3
        assert not _sleepers()

    @pytest.mark.asyncio
    async def test_all_targets_failing(self, temp_dir, sleeper_command):
        config = SupervisorConfig(
            command=sleeper_command,
            stop_timeout=2.0,
            targets=[TargetConfig(name="app", options={"path": "missing"})],
        )

        assert await asyncio.wait_for(run_supervisor(config, cwd=temp_dir), timeout=10.0) == 1
        assert not _sleepers()

    @pytest.mark.asyncio
    async def test_signal_stops_all_workers(self, temp_dir, sleeper_command, test_utils):
        for name in ("one", "two"):
            (temp_dir / name).mkdir()
            (temp_dir / name / "manifest.json").write_text("{}")
        config = SupervisorConfig(
            command=sleeper_command,
            stop_timeout=2.0,
            targets=[
                TargetConfig(name="one", options={"path": "one"}),
                TargetConfig(name="two", options={"path": "two"}),
            ],
        )

        task = asyncio.ensure_future(run_supervisor(config, cwd=temp_dir))
        assert await test_utils.wait_until(lambda: len(_sleepers()) == 2)

        os.kill(os.getpid(), signal.SIGTERM)

        assert await asyncio.wait_for(task, timeout=10.0) == 0
        assert not _sleepers()


def _sleepers():
    """Running sleeper workers spawned by this test process."""
    workers = []
    for child in psutil.Process().children(recursive=True):
        try:
            if child.status() != psutil.STATUS_ZOMBIE and "time.sleep(60)" in " ".join(child.cmdline()):
                workers.append(child)
        except psutil.NoSuchProcess:
            continue
    return workers
