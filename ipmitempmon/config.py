#!/usr/bin/env python3
"""
Configuration manager for the temperature monitor.

Handles loading and accessing configuration from a YAML file and
turns it into the immutable settings objects the monitor runs on.
"""

import os
import re
import sys
from dataclasses import dataclass
from typing import Optional

import yaml


LINUX = "linux"
WINDOWS = "windows"

DEFAULT_TOOL_PATHS = {
    LINUX: "/usr/bin/ipmitool",
    WINDOWS: r"C:\Program Files (x86)\Dell\SysMgt\bmc\ipmitool.exe",
}

# Matches the two-digit reading on the CPU temperature lines (0Eh, 0Fh) of
# `ipmitool sdr type temperature` on an R620.
DEFAULT_TEMP_REGEX = r"(?<=0Eh|0Fh).+(\d{2})"


class PlatformNotSupportedError(RuntimeError):
    """Raised when the monitor is started on something other than Linux or Windows."""


@dataclass(frozen=True)
class ThresholdConfig:
    """Settings consumed by the decision engine and the poll loop.

    - max_temp_c: reading or rolling average above this is "hot"
    - back_to_manual_delay: seconds temperature must stay below max
      before automatic control is turned off again
    - manual_fan_percent: static fan speed used in manual mode (0-100)
    - manual_switch_reattempts: how many times the manual command may be
      sent while below threshold
    - poll_interval: seconds between samples
    - window_size: number of readings in the rolling average
    - retry_*: backoff schedule for every ipmitool call
    - temp_regex: pattern pulling readings out of the query output
    """
    max_temp_c: int = 50
    back_to_manual_delay: int = 60
    manual_fan_percent: int = 30
    manual_switch_reattempts: int = 0
    poll_interval: int = 30
    window_size: int = 10
    retry_count: int = 3
    retry_initial_delay_ms: int = 1000
    retry_backoff_factor: float = 2.0
    temp_regex: str = DEFAULT_TEMP_REGEX

    def validate(self) -> "ThresholdConfig":
        """Raise ValueError for settings the monitor cannot run with."""
        if self.window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {self.window_size}")
        if self.back_to_manual_delay < 0:
            raise ValueError(f"back_to_manual_delay must be >= 0, got {self.back_to_manual_delay}")
        if not 0 <= self.manual_fan_percent <= 100:
            raise ValueError(f"manual_fan_percent must be within 0-100, got {self.manual_fan_percent}")
        if self.manual_switch_reattempts < 0:
            raise ValueError(f"manual_switch_reattempts must be >= 0, got {self.manual_switch_reattempts}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {self.poll_interval}")
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {self.retry_count}")
        if self.retry_initial_delay_ms < 0:
            raise ValueError(f"retry_initial_delay_ms must be >= 0, got {self.retry_initial_delay_ms}")
        if self.retry_backoff_factor < 1:
            raise ValueError(f"retry_backoff_factor must be >= 1, got {self.retry_backoff_factor}")
        try:
            re.compile(self.temp_regex)
        except re.error as e:
            raise ValueError(f"temp_regex does not compile: {e}")
        return self


@dataclass(frozen=True)
class IpmiConfig:
    """Connection settings for the out-of-band management controller."""
    host: str
    user: str
    password: str
    interface: str = "lanplus"
    tool_path: Optional[str] = None


def detect_platform() -> str:
    """Return 'linux' or 'windows'; anything else cannot run ipmitool here."""
    if sys.platform.startswith("linux"):
        return LINUX
    if sys.platform.startswith("win"):
        return WINDOWS
    raise PlatformNotSupportedError("Only works on Windows or Linux.")


def resolve_tool_path(override: Optional[str] = None, platform: Optional[str] = None) -> str:
    """
    Locate the ipmitool binary.

    Uses the configured path when one is set, otherwise the default
    install location for the platform.
    """
    path = override or DEFAULT_TOOL_PATHS[platform or detect_platform()]
    if not os.path.exists(path):
        raise FileNotFoundError(f"ipmitool not found at {path}")
    return path


class ConfigManager:
    """
    Manages loading and accessing configuration from YAML file.
    """

    def __init__(self, config_path=None):
        """Initialize the configuration manager with a config file path."""
        self.config_path = config_path
        self._config = {}

        if config_path:
            self.reload()

    def reload(self) -> None:
        """Reload configuration from YAML file."""
        if not self.config_path or not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, "r") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Error loading configuration: {str(e)}")

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Error loading configuration: expected a mapping in {self.config_path}")
        self._config = loaded

    @property
    def log_file(self) -> Optional[str]:
        """Log file for daemon output; None logs to stdout only."""
        return self._config.get("log_file", "/var/log/ipmi-tempmon.log")

    @property
    def environment(self) -> str:
        """'production' runs ipmitool; 'development' replays the fixture file."""
        return self._config.get("environment", "production")

    @property
    def fixture_path(self) -> str:
        """Canned ipmitool output used in development mode."""
        return self._config.get("fixture_path", os.path.join(os.getcwd(), "testdata.txt"))

    @property
    def ipmi(self) -> IpmiConfig:
        """Connection settings for ipmitool."""
        section = self._config.get("ipmi") or {}
        return IpmiConfig(
            host=str(section.get("host", "")),
            user=str(section.get("user", "")),
            password=str(section.get("password", "")),
            interface=section.get("interface", "lanplus"),
            tool_path=section.get("tool_path") or None,
        )

    def thresholds(self) -> ThresholdConfig:
        """Build the validated, immutable threshold settings."""
        defaults = ThresholdConfig()
        try:
            config = ThresholdConfig(
                max_temp_c=int(self._config.get("max_temp_c", defaults.max_temp_c)),
                back_to_manual_delay=int(self._config.get("back_to_manual_delay", defaults.back_to_manual_delay)),
                manual_fan_percent=int(self._config.get("manual_fan_percent", defaults.manual_fan_percent)),
                manual_switch_reattempts=int(
                    self._config.get("manual_switch_reattempts", defaults.manual_switch_reattempts)),
                poll_interval=int(self._config.get("poll_interval", defaults.poll_interval)),
                window_size=int(self._config.get("rolling_window_size", defaults.window_size)),
                retry_count=int(self._config.get("retry_count", defaults.retry_count)),
                retry_initial_delay_ms=int(
                    self._config.get("retry_initial_delay_ms", defaults.retry_initial_delay_ms)),
                retry_backoff_factor=float(
                    self._config.get("retry_backoff_factor", defaults.retry_backoff_factor)),
                temp_regex=str(self._config.get("temp_regex", defaults.temp_regex)),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid configuration value: {e}")
        return config.validate()
