#!/usr/bin/env python3
"""IPMI Temperature Monitor Daemon

Keeps a server's fans on the vendor's automatic curve while it runs hot
and on a quiet static speed once it has cooled down.

Features:
- Configuration loaded from YAML.
- Maximum of several ipmitool temperature readings per poll.
- Rolling average to smooth out single spikes.
- Hysteresis delay before returning to manual fan control.
- Bounded re-sending of the manual command.
- Exponential backoff on every ipmitool call.
- Development mode replaying a canned ipmitool output.
"""

import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from .analyzer import RollingAggregator
from .commands import ActuationError, Actuator
from .config import ConfigManager, detect_platform, resolve_tool_path
from .controller import ModeDecisionEngine
from .executor import CommandExecutor, FixtureExecutor, IpmiToolExecutor
from .retry import Cancelled, RetryPolicy
from .sensors import TemperatureSampler


def setup_logging(log_file_path: Optional[str], log_level_str: str = "INFO"):
    """Configure logging system for both file and console output."""
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s [%(levelname)s] %(module)s: %(message)s',
        datefmt='%H:%M:%S',
        handlers=handlers
    )
    logging.info("Starting IPMI Temperature Monitor")
    logging.debug(f"Logging initialized at level {log_level_str.upper()}")


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="IPMI temperature monitor and fan mode controller.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML configuration file. If not provided, searches in standard locations."
    )
    parser.add_argument(
        "--fixture",
        default=None,
        help="Replay this file as ipmitool output instead of contacting the BMC (development mode)."
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level."
    )
    return parser.parse_args(argv)


def find_config_file(specified_path: str = None) -> Optional[str]:
    """
    Find the configuration file.
    Searches in order: specified path, package directory, project root, /etc, user's config.
    """
    if specified_path and os.path.exists(specified_path):
        return specified_path

    package_dir = Path(__file__).resolve().parent
    project_root_dir = package_dir.parent

    search_paths = [
        package_dir / "config.yaml",
        project_root_dir / "config.yaml",
        Path("/etc/ipmi-tempmon/config.yaml"),
        Path.home() / ".config/ipmi-tempmon/config.yaml"
    ]

    for path in search_paths:
        if path.exists():
            return str(path)

    return None


class PollLoop:
    """
    Drives the monitor: sample, average, decide, wait.

    One cycle always finishes before the next starts. The stop event
    interrupts the inter-cycle wait and any retry backoff.
    """

    def __init__(self, sampler: TemperatureSampler, aggregator: RollingAggregator,
                 engine: ModeDecisionEngine, poll_interval: float,
                 stop_event: Optional[threading.Event] = None):
        self.sampler = sampler
        self.aggregator = aggregator
        self.engine = engine
        self.poll_interval = poll_interval
        self.stop_event = stop_event or threading.Event()

    def stop(self) -> None:
        """Ask the loop to exit at its next wait."""
        self.stop_event.set()

    def run_once(self) -> bool:
        """
        Run a single poll cycle.

        Returns:
            True if a reading was taken and evaluated, False if the
            sample failed and the cycle was skipped.
        """
        temp = self.sampler.sample()
        if temp is None:
            logging.error("Temperature read failed, skipping this cycle.")
            return False

        self.aggregator.push(temp)
        rolling_average = self.aggregator.average()
        logging.info(
            "Server fan control is %s, temp is %d C, rolling average temp is %.1f",
            self.engine.current_mode.value, temp, rolling_average
        )
        self.engine.evaluate(temp, rolling_average)
        return True

    def run(self) -> int:
        """
        Run until stopped.

        Returns:
            Process exit status: 0 when stopped, 1 when a fan mode command
            could not be delivered.
        """
        try:
            self.engine.start()
            while not self.stop_event.is_set():
                self.run_once()
                self.stop_event.wait(self.poll_interval)
        except Cancelled:
            pass
        except ActuationError as exc:
            logging.critical("Error attempting to call ipmitool! %s", exc)
            logging.warning("Monitor stopping")
            return 1

        logging.warning("Monitor stopping")
        return 0


def build_executor(config: ConfigManager, fixture: Optional[str] = None) -> CommandExecutor:
    """Pick the fixture executor in development mode, ipmitool otherwise."""
    if fixture or config.environment == "development":
        path = fixture or config.fixture_path
        logging.info(f"Development mode: replaying {path}")
        return FixtureExecutor(path)

    platform = detect_platform()
    logging.info(f"Detected OS: {platform}.")
    ipmi = config.ipmi
    return IpmiToolExecutor(ipmi, resolve_tool_path(ipmi.tool_path, platform))


def main(argv=None) -> None:
    """Main application entry point.

    Loads configuration, wires the components together and runs the poll
    loop until SIGINT/SIGTERM or a fatal fan command failure.
    """
    args = parse_args(argv)

    config_file_path = find_config_file(args.config)
    if not config_file_path:
        sys.exit(
            "[ERR] Configuration file (config.yaml) not found. "
            "Please provide a path using --config or place it in a standard location "
            "(e.g., project root, /etc/ipmi-tempmon/, ~/.config/ipmi-tempmon/)."
        )

    try:
        config = ConfigManager(config_file_path)
        thresholds = config.thresholds()
    except (FileNotFoundError, ValueError) as e:
        sys.exit(f"[ERR] {e}")

    try:
        setup_logging(config.log_file, args.log_level)
    except OSError as e:
        sys.exit(f"[ERR] Unable to open log file: {e}")
    logging.info(f"Using configuration from: {config_file_path}")
    logging.debug(f"Effective poll interval: {thresholds.poll_interval}s, max temp: {thresholds.max_temp_c} C")

    try:
        executor = build_executor(config, args.fixture)
    except (RuntimeError, FileNotFoundError) as e:
        logging.critical(f"Startup failed: {e}")
        sys.exit(1)

    stop_event = threading.Event()
    policy = RetryPolicy.from_thresholds(thresholds)
    actuator = Actuator(executor, policy, stop_event)
    engine = ModeDecisionEngine(thresholds, actuator)
    sampler = TemperatureSampler(executor, thresholds, policy, stop_event)
    aggregator = RollingAggregator(thresholds.window_size)
    loop = PollLoop(sampler, aggregator, engine, thresholds.poll_interval, stop_event)

    def handle_signal(signum, frame):
        logging.info(f"Received signal {signum}, shutting down.")
        loop.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    sys.exit(loop.run())


if __name__ == "__main__":
    main()
