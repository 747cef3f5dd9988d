"""
Command-line interface for the ZAT server supervisor.

Runs an optional build command, then fires the build hook so every configured
target starts its worker, and keeps the host alive until the last worker has
been shut down (by a dependency rename/delete or by SIGINT/SIGTERM).
"""

import argparse
import asyncio
import dataclasses
import logging
import re
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import get_config, get_config_path, set_config_path
from ..models.config import OptionValue, SupervisorConfig, TargetConfig
from ..orchestration import (
    BuildHook,
    HostExitChannel,
    InstanceRegistry,
    LifecycleCoordinator,
    SignalHandler,
)
from ..validation import ValidationError, handle_cli_error

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_INTEGER = re.compile(r"^-?\d+$")
_DECIMAL = re.compile(r"^-?\d+\.\d+$")

logger = logging.getLogger(__name__)


def parse_option_argument(text: str) -> Tuple[str, OptionValue]:
    """
    Parse one ``--option`` value.

    ``KEY=VALUE`` gives a string, or a number when VALUE is
    written exactly as that number prints; a bare ``KEY`` gives a flag
    without a value.
    """
    key, separator, value = text.partition("=")
    key = key.strip()
    if not key:
        raise ValidationError(f"Option name missing in {text!r}", field_name="--option", value=text)
    if not separator:
        return key, None
    # Text that would not survive a round trip (leading zeros, "-0") stays a string.
    if _INTEGER.match(value) and str(int(value)) == value:
        return key, int(value)
    if _DECIMAL.match(value) and str(float(value)) == value:
        return key, float(value)
    return key, value


def parse_options(values: Optional[Sequence[str]]) -> Dict[str, OptionValue]:
    options: Dict[str, OptionValue] = {}
    for text in values or []:
        key, value = parse_option_argument(text)
        options[key] = value
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Start a ZAT server after a successful build and keep it in sync with its dependency files."
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Supervisor TOML file describing one or more targets. Defaults to ./supervisor.toml when present.",
    )
    parser.add_argument(
        "-o",
        "--option",
        action="append",
        metavar="KEY[=VALUE]",
        help="Worker option for a single ad-hoc target (repeatable), e.g. -o path=apps/app -o port=4567.",
    )
    parser.add_argument(
        "--build-command",
        type=str,
        help="Shell command to run first; the worker starts only if it exits with status 0.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (overrides the config file).",
    )
    return parser


def resolve_supervisor_config(args: argparse.Namespace) -> SupervisorConfig:
    """Pick the configuration source: explicit file, ad-hoc options, default file, or defaults."""
    if args.config is not None:
        set_config_path(args.config)
        config = get_config()
    elif args.option:
        config = SupervisorConfig(targets=[TargetConfig(name="zat-server", options=parse_options(args.option))])
    elif get_config_path().exists():
        config = get_config()
    else:
        config = SupervisorConfig(targets=[TargetConfig(name="zat-server")])

    if args.build_command:
        # The loaded config is cached and shared; override on a copy.
        config = dataclasses.replace(config, build_command=args.build_command)
    return config


async def run_build_command(command: str) -> int:
    """Run the build command through the shell and return its exit status."""
    logger.info(f"Running build command: {command}")
    process = await asyncio.create_subprocess_shell(command)
    return_code = await process.wait()
    logger.info(f"Build command finished with exit code: {return_code}")
    return return_code


async def run_supervisor(config: SupervisorConfig, cwd: Optional[Path] = None) -> int:
    """
    Supervise every target of `config` until the host exit is requested.

    Returns:
        The process exit code
    """
    registry = InstanceRegistry()
    exit_channel = HostExitChannel()
    hook = BuildHook()

    coordinators: List[LifecycleCoordinator] = [
        LifecycleCoordinator(
            target.options,
            name=target.name,
            command=config.command,
            cwd=cwd,
            registry=registry,
            exit_channel=exit_channel,
            stop_timeout=config.stop_timeout,
        )
        for target in config.targets
    ]
    for coordinator in coordinators:
        coordinator.apply(hook)

    signal_handler = SignalHandler()
    for coordinator in coordinators:
        signal_handler.register(coordinator)
    signal_handler.setup_signal_handlers()

    try:
        if config.build_command:
            build_exit_code = await run_build_command(config.build_command)
            if build_exit_code != 0:
                logger.error(f"Build failed with exit code {build_exit_code}, not starting any worker.")
                return build_exit_code

        failures = await hook.call()
        if failures:
            logger.error(f"{len(failures)} of {len(coordinators)} target(s) failed to start")
            if registry.is_ready_for_exit():
                exit_channel.request_exit(1)

        return await exit_channel.wait()
    finally:
        await signal_handler.request_shutdown()
        signal_handler.cleanup_signal_handlers()


def main_cli(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main command-line entry point.

    Raises:
        SystemExit: With the supervisor's exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level or logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
    )

    try:
        config = resolve_supervisor_config(args)
    except (FileNotFoundError, KeyError, ValidationError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            logger=logger,
        )

    if args.log_level is None:
        logging.getLogger().setLevel(config.log_level)

    logger.info(f"Supervising {len(config.targets)} target(s): {', '.join(t.name for t in config.targets)}")

    try:
        exit_code = asyncio.run(run_supervisor(config))
    except ValidationError as e:
        handle_cli_error(error=e, context="target options", exit_code=1, logger=logger)

    sys.exit(exit_code)


if __name__ == "__main__":
    main_cli()
