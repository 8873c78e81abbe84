#!/usr/bin/env python3
"""
Command executors.

Run an ipmitool command and hand back its text output, either against
the real management controller or from a canned fixture file.
"""

import logging
import shlex
import subprocess
from abc import ABC, abstractmethod
from typing import List

from .config import IpmiConfig


class ExecutorError(Exception):
    """Raised when a command could not be run or reported failure."""


class CommandExecutor(ABC):
    """Runs one management-interface command."""

    @abstractmethod
    def execute(self, command: str) -> str:
        """Return the command's text output, or raise ExecutorError."""
        pass


class IpmiToolExecutor(CommandExecutor):
    """Runs commands through ipmitool against a remote BMC."""

    def __init__(self, ipmi: IpmiConfig, tool_path: str):
        self.ipmi = ipmi
        self.tool_path = tool_path

    def build_args(self, command: str) -> List[str]:
        """Full argv for one command."""
        return [
            self.tool_path,
            "-I", self.ipmi.interface,
            "-H", self.ipmi.host,
            "-U", self.ipmi.user,
            "-P", self.ipmi.password,
        ] + shlex.split(command)

    def _redacted(self, args: List[str]) -> str:
        if not self.ipmi.password:
            return " ".join(args)
        return " ".join("{password}" if arg == self.ipmi.password else arg for arg in args)

    def execute(self, command: str) -> str:
        args = self.build_args(command)
        logging.debug("Executing: %s", self._redacted(args))

        try:
            result = subprocess.run(args, capture_output=True, text=True)
        except OSError as exc:
            raise ExecutorError(f"Error attempting to call ipmitool: {exc}")

        if result.returncode != 0:
            raise ExecutorError(
                f"ipmitool exited with status {result.returncode}: {result.stderr.strip()}"
            )
        return result.stdout


class FixtureExecutor(CommandExecutor):
    """Development mode: answers every command with the same canned output."""

    def __init__(self, path: str):
        self.path = path

    def execute(self, command: str) -> str:
        logging.debug("Executing (fixture %s): %s", self.path, command)
        try:
            with open(self.path, "r") as f:
                return f.read()
        except OSError as exc:
            raise ExecutorError(f"Unable to read fixture {self.path}: {exc}")
